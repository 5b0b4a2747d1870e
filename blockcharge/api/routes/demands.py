"""Service charge demand API routes: generation, payments, penalties, reminders."""

import logging

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from blockcharge.api.errors import raise_app_error
from blockcharge.database import get_db
from blockcharge.errors import ServiceChargeError
from blockcharge.models import DemandStatus, PenaltyConfig, RemindersConfig
from blockcharge.schemas.demands import (
    DemandResponse,
    GenerateDemandsPayload,
    PaymentRecordResponse,
    PenaltySweepPayload,
    PenaltySweepResponse,
    RecordPaymentPayload,
)
from blockcharge.services.demand_generator import BillableUnit, DemandGenerator
from blockcharge.services.demand_store import DemandStore
from blockcharge.services.payment_ledger import PaymentLedger
from blockcharge.services.penalty_engine import PenaltyReminderEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["demands"])


@router.post(
    "/buildings/{building_id}/demands",
    response_model=list[DemandResponse],
    status_code=status.HTTP_201_CREATED,
)
def generate_demands(
    building_id: str,
    payload: GenerateDemandsPayload,
    db: Session = Depends(get_db),
) -> list[DemandResponse]:
    """
    Generate demands for a building and period.

    Units already billed for the period are skipped, so the response may be
    shorter than the unit list (or empty on a re-run).

    Returns:
        201: Newly created demands
        422: Invalid rate or penalty configuration
    """
    options = {
        "issued_by_uid": payload.issued_by_uid,
        "invoice_grouping": payload.invoice_grouping,
        "include_ground_rent": payload.include_ground_rent,
    }
    if payload.penalty_config is not None:
        options["penalty_config"] = PenaltyConfig(**payload.penalty_config.model_dump())
    if payload.reminders_config is not None:
        options["reminders_config"] = RemindersConfig(**payload.reminders_config.model_dump())

    generator = DemandGenerator(db)
    try:
        if payload.units is None:
            demands = generator.generate_for_building(
                building_id, payload.period, payload.rate_per_area, **options
            )
        else:
            units = [BillableUnit(**unit.model_dump()) for unit in payload.units]
            demands = generator.generate_demands(
                building_id, payload.period, payload.rate_per_area, units, **options
            )
    except ServiceChargeError as e:
        raise_app_error(e)

    return [DemandResponse.from_demand(demand) for demand in demands]


@router.get("/buildings/{building_id}/demands", response_model=list[DemandResponse])
def list_demands(
    building_id: str,
    status_filter: DemandStatus | None = Query(None, alias="status"),
    period: str | None = None,
    db: Session = Depends(get_db),
) -> list[DemandResponse]:
    """List demands of a building, optionally filtered by status or period."""
    store = DemandStore(db)
    try:
        if status_filter is not None:
            demands = store.query_demands_by_building_and_status(building_id, [status_filter])
            if period is not None:
                demands = [demand for demand in demands if demand.period == period]
        else:
            demands = store.list_demands(building_id, period)
    except ServiceChargeError as e:
        raise_app_error(e)
    return [DemandResponse.from_demand(demand) for demand in demands]


@router.get("/demands/{demand_id}", response_model=DemandResponse)
def get_demand(demand_id: int, db: Session = Depends(get_db)) -> DemandResponse:
    """
    Fetch a single demand with its payment history.

    Returns:
        200: Demand
        404: Demand not found
    """
    try:
        demand = DemandStore(db).get_demand(demand_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return DemandResponse.from_demand(demand)


@router.post("/demands/{demand_id}/payments", response_model=DemandResponse)
def record_payment(
    demand_id: int,
    payload: RecordPaymentPayload,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
) -> DemandResponse:
    """
    Record a payment against a demand.

    Resubmitting with the same Idempotency-Key returns the demand without
    applying the payment twice.

    Returns:
        200: Updated demand
        404: Demand not found
        409: Concurrent update (retryable) or constraint violation
        422: Non-positive amount
        503: Store unavailable (retryable)
    """
    try:
        demand = PaymentLedger(db).record_payment(
            demand_id,
            payload.amount,
            payload.payment_date,
            payload.method,
            reference=payload.reference,
            recorded_by=payload.recorded_by,
            notes=payload.notes,
            idempotency_key=idempotency_key,
        )
    except ServiceChargeError as e:
        raise_app_error(e)
    return DemandResponse.from_demand(demand)


@router.get("/demands/{demand_id}/payments", response_model=list[PaymentRecordResponse])
def get_payment_history(demand_id: int, db: Session = Depends(get_db)) -> list[PaymentRecordResponse]:
    """Payments recorded against a demand, oldest first."""
    try:
        payments = PaymentLedger(db).get_payment_history(demand_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return [PaymentRecordResponse.model_validate(payment.to_document()) for payment in payments]


@router.post("/buildings/{building_id}/penalties/sweep", response_model=PenaltySweepResponse)
def apply_penalties(
    building_id: str,
    payload: PenaltySweepPayload | None = None,
    db: Session = Depends(get_db),
) -> PenaltySweepResponse:
    """
    Apply one-time late-payment penalties to the building's overdue demands.

    Returns:
        200: Number of demands penalised by this sweep
    """
    now = payload.now if payload is not None else None
    try:
        penalised = PenaltyReminderEngine(db).apply_penalties(building_id, now=now)
    except ServiceChargeError as e:
        raise_app_error(e)
    logger.info("Penalty sweep via API for building %s: %d penalised", building_id, penalised)
    return PenaltySweepResponse(building_id=building_id, penalised=penalised)


@router.post("/demands/{demand_id}/reminders", response_model=DemandResponse)
def send_reminder(demand_id: int, db: Session = Depends(get_db)) -> DemandResponse:
    """
    Count a reminder for a demand. At the reminder cap this is a no-op.

    Returns:
        200: Demand with updated reminder count
        404: Demand not found
    """
    try:
        demand = PenaltyReminderEngine(db).send_reminder(demand_id)
    except ServiceChargeError as e:
        raise_app_error(e)
    return DemandResponse.from_demand(demand)
