"""Pydantic schemas for building financial reporting."""

import datetime
from decimal import Decimal

from pydantic import Field

from blockcharge.models import ExpenditureCategory, IncomeSource, MaintenanceTag
from blockcharge.schemas.demands import CamelModel, DemandResponse


class DemandStatsResponse(CamelModel):
    total_demands: int
    total_amount: Decimal
    total_collected: Decimal
    outstanding_amount: Decimal
    overdue_amount: Decimal
    by_status: dict[str, int]
    recent_demands: list[DemandResponse] = Field(default_factory=list)


class IncomeRecordResponse(CamelModel):
    id: int
    building_id: str
    date: datetime.date
    amount: Decimal
    source: IncomeSource
    description: str
    related_demand_id: int | None = None
    recorded_by_uid: str | None = None


class ExpenditurePayload(CamelModel):
    """Request payload for POST /api/buildings/{building_id}/expenditures."""

    date: datetime.date
    amount: Decimal = Field(..., description="Amount spent; must be positive")
    category: ExpenditureCategory
    description: str
    tag: MaintenanceTag | None = None
    related_invoice_id: str | None = None
    vendor_name: str | None = None
    recorded_by_uid: str | None = None


class ExpenditureRecordResponse(CamelModel):
    id: int
    building_id: str
    date: datetime.date
    amount: Decimal
    category: ExpenditureCategory
    tag: MaintenanceTag | None = None
    description: str
    related_invoice_id: str | None = None
    vendor_name: str | None = None
    recorded_by_uid: str | None = None


class FinancialSummaryResponse(CamelModel):
    """Response schema for GET /api/buildings/{building_id}/summary."""

    building_id: str
    period: str | None = None
    total_income: Decimal
    total_expenditure: Decimal
    net_cash_flow: Decimal
    income_breakdown: dict[str, Decimal]
    expenditure_breakdown: dict[str, Decimal]
    maintenance_breakdown: dict[str, Decimal]
    generated_at: datetime.datetime
