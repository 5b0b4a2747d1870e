"""Building financial reporting API routes."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from blockcharge.api.errors import raise_app_error
from blockcharge.database import get_db
from blockcharge.errors import ServiceChargeError
from blockcharge.schemas.demands import DemandResponse
from blockcharge.schemas.finances import (
    DemandStatsResponse,
    ExpenditurePayload,
    ExpenditureRecordResponse,
    FinancialSummaryResponse,
    IncomeRecordResponse,
)
from blockcharge.services.demand_store import DemandStore
from blockcharge.services.financial_summary_service import FinancialSummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/buildings/{building_id}", tags=["finances"])


@router.get("/summary", response_model=FinancialSummaryResponse)
def get_financial_summary(
    building_id: str, period: str | None = None, db: Session = Depends(get_db)
) -> FinancialSummaryResponse:
    """
    Income, expenditure and net cash flow for a building.

    Returns:
        200: Summary for the quarter (or all time when no period is given)
        422: Unrecognised period
    """
    try:
        summary = FinancialSummaryService(db).get_building_financial_summary(building_id, period)
    except ServiceChargeError as e:
        raise_app_error(e)
    return FinancialSummaryResponse.model_validate(summary)


@router.get("/stats", response_model=DemandStatsResponse)
def get_demand_stats(building_id: str, db: Session = Depends(get_db)) -> DemandStatsResponse:
    """Demand counts by status and billed/collected/outstanding totals."""
    try:
        stats = FinancialSummaryService(db).get_demand_stats(building_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return DemandStatsResponse(
        total_demands=stats.total_demands,
        total_amount=stats.total_amount,
        total_collected=stats.total_collected,
        outstanding_amount=stats.outstanding_amount,
        overdue_amount=stats.overdue_amount,
        by_status=stats.by_status,
        recent_demands=[DemandResponse.from_demand(d) for d in stats.recent_demands],
    )


@router.get("/overdue", response_model=list[DemandResponse])
def get_overdue_demands(building_id: str, db: Session = Depends(get_db)) -> list[DemandResponse]:
    """Unpaid demands past their due date."""
    try:
        demands = FinancialSummaryService(db).get_overdue_demands(building_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return [DemandResponse.from_demand(demand) for demand in demands]


@router.get("/search", response_model=list[DemandResponse])
def search_demands(building_id: str, q: str = "", db: Session = Depends(get_db)) -> list[DemandResponse]:
    """Search demands by flat number, resident name or period."""
    try:
        demands = FinancialSummaryService(db).search_demands(building_id, q)
    except ServiceChargeError as e:
        raise_app_error(e)
    return [DemandResponse.from_demand(demand) for demand in demands]


@router.get("/income", response_model=list[IncomeRecordResponse])
def list_income(building_id: str, db: Session = Depends(get_db)) -> list[IncomeRecordResponse]:
    """Income ledger of a building, newest first."""
    try:
        records = DemandStore(db).list_income(building_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return [IncomeRecordResponse.model_validate(record) for record in records]


@router.post(
    "/expenditures",
    response_model=ExpenditureRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_expenditure(
    building_id: str, payload: ExpenditurePayload, db: Session = Depends(get_db)
) -> ExpenditureRecordResponse:
    """
    Record an expense against the building ledger.

    Returns:
        201: Recorded expenditure
        422: Non-positive amount
    """
    try:
        record = FinancialSummaryService(db).record_expenditure(
            building_id,
            payload.date,
            payload.amount,
            payload.category,
            payload.description,
            tag=payload.tag,
            related_invoice_id=payload.related_invoice_id,
            vendor_name=payload.vendor_name,
            recorded_by_uid=payload.recorded_by_uid,
        )
    except ServiceChargeError as e:
        raise_app_error(e)
    return ExpenditureRecordResponse.model_validate(record)
