"""Pydantic schemas for service charge demands and payments.

Field names are snake_case in Python and camelCase on the wire, matching the
persisted document shape (``ServiceChargeDemand.to_document``).
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from blockcharge.models import DemandStatus, InvoiceGrouping, PaymentMethod, PenaltyType


class CamelModel(BaseModel):
    """Base schema serialised with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class BillableUnitPayload(CamelModel):
    """Unit supplied inline when generating demands."""

    unit_id: str = Field(..., description="Flat identifier")
    unit_number: str = Field(..., description="Flat number shown on the demand")
    area: Decimal | None = Field(None, ge=0, description="Area in square feet")
    fixed_charge: Decimal = Field(Decimal("0"), ge=0, description="Ground rent for the period")
    resident_id: str | None = None
    resident_name: str | None = None


class PenaltyConfigPayload(CamelModel):
    type: str = Field(PenaltyType.FLAT.value, description="Penalty type; only 'flat' is supported")
    flat_amount: Decimal = Field(Decimal("0"), ge=0)
    grace_period_days: int = Field(0, ge=0)


class RemindersConfigPayload(CamelModel):
    reminder_days: list[int] = Field(default_factory=lambda: [7, 3, 1])
    max_reminders: int = Field(3, ge=0)


class GenerateDemandsPayload(CamelModel):
    """Request payload for POST /api/buildings/{building_id}/demands."""

    period: str = Field(..., description="Billing period, e.g. 'Q1 2024'")
    rate_per_area: Decimal = Field(..., description="Service charge rate per square foot")
    units: list[BillableUnitPayload] | None = Field(
        None, description="Units to bill; defaults to the building's active flats"
    )
    issued_by_uid: str | None = None
    penalty_config: PenaltyConfigPayload | None = None
    reminders_config: RemindersConfigPayload | None = None
    invoice_grouping: InvoiceGrouping = InvoiceGrouping.PER_UNIT
    include_ground_rent: bool = True


class RecordPaymentPayload(CamelModel):
    """Request payload for POST /api/demands/{demand_id}/payments."""

    amount: Decimal = Field(..., description="Amount paid; must be positive")
    payment_date: date
    method: PaymentMethod
    reference: str | None = None
    recorded_by: str | None = None
    notes: str | None = None


class PenaltySweepPayload(CamelModel):
    now: datetime | None = Field(None, description="Evaluation time; defaults to the current time")


class PenaltySweepResponse(CamelModel):
    building_id: str
    penalised: int


class PaymentRecordResponse(CamelModel):
    payment_id: str
    payment_date: date
    amount: Decimal
    method: PaymentMethod
    reference: str | None = None
    notes: str | None = None
    recorded_by_uid: str | None = None
    recorded_at: datetime


class PenaltyConfigResponse(CamelModel):
    type: str
    flat_amount: Decimal
    grace_period_days: int


class RemindersConfigResponse(CamelModel):
    reminder_days: list[int]
    max_reminders: int


class DemandResponse(CamelModel):
    """Service charge demand in its document shape."""

    id: int
    building_id: str
    flat_id: str
    flat_number: str
    resident_uid: str | None = None
    resident_name: str | None = None
    period: str = Field(..., alias="financialQuarterDisplayString")
    area_sq_ft: Decimal
    rate_applied: Decimal
    base_amount: Decimal
    ground_rent_amount: Decimal
    penalty_amount_applied: Decimal
    total_amount_due: Decimal
    amount_paid: Decimal
    outstanding_amount: Decimal
    due_date: date
    issued_date: datetime
    status: DemandStatus
    payment_history: list[PaymentRecordResponse] = Field(default_factory=list)
    notes: str | None = None
    issued_by_uid: str | None = None
    invoice_grouping: InvoiceGrouping
    penalty_config: PenaltyConfigResponse
    reminders_config: RemindersConfigResponse
    reminders_sent: int
    last_reminder_sent: datetime | None = None
    penalty_applied_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_demand(cls, demand) -> "DemandResponse":
        return cls.model_validate(demand.to_document())
