"""Service charge demand model - one charge per flat per billing period."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Date, DateTime, Enum as SQLEnum, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockcharge.errors import InvariantViolationError
from blockcharge.models import Base, BaseModel
from blockcharge.money import ZERO, outstanding, to_money


class DemandStatus(str, Enum):
    """Demand status state machine.

    Issued -> Partially Paid -> Paid, and Issued/Partially Paid -> Overdue once
    the grace period elapses. Paid is terminal.
    """

    ISSUED = "Issued"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"


class PenaltyType(str, Enum):
    """Late-payment penalty kinds. Only the flat fee is supported."""

    FLAT = "flat"


class InvoiceGrouping(str, Enum):
    """How units are combined into demands at issue time."""

    PER_UNIT = "per_unit"
    PER_RESIDENT = "per_resident"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


@dataclass(frozen=True)
class PenaltyConfig:
    """One-time late-payment penalty settings."""

    type: PenaltyType = PenaltyType.FLAT
    flat_amount: Decimal = ZERO
    grace_period_days: int = 0


@dataclass(frozen=True)
class RemindersConfig:
    """Reminder cap and the day offsets at which reminders are eligible."""

    reminder_days: list[int] = field(default_factory=lambda: [7, 3, 1])
    max_reminders: int = 3


class ServiceChargeDemand(Base, BaseModel):
    """Charge demand issued to a flat for a billing period.

    Monetary invariants (checked by ``check_invariants``):
        total_amount_due == base_amount + ground_rent_amount + penalty_amount_applied
        outstanding_amount == max(0, total_amount_due - amount_paid)
        amount_paid == sum(payment.amount for payment in payments)
        reminders_sent <= max_reminders

    The ``version`` column is SQLAlchemy's version counter: an UPDATE issued
    against a stale version raises StaleDataError instead of overwriting a
    concurrent write.
    """

    __tablename__ = "service_charge_demands"

    # Identity (resident fields are snapshotted at issue time)
    building_id: Mapped[str] = mapped_column(String(64), nullable=False)
    flat_id: Mapped[str] = mapped_column(String(64), nullable=False)
    flat_number: Mapped[str] = mapped_column(String(255), nullable=False)
    resident_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resident_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issued_by_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Period
    period: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Billing period display string, e.g. 'Q1 2024'",
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    issued_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Amounts
    area_sq_ft: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    rate_applied: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=ZERO)
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    ground_rent_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=ZERO
    )
    penalty_amount_applied: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=ZERO
    )
    total_amount_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    outstanding_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[DemandStatus] = mapped_column(
        SQLEnum(
            DemandStatus,
            native_enum=False,
            values_callable=_enum_values,
            length=32,
        ),
        nullable=False,
        default=DemandStatus.ISSUED,
    )

    # Penalty configuration and one-time guard
    penalty_type: Mapped[PenaltyType] = mapped_column(
        SQLEnum(PenaltyType, native_enum=False, values_callable=_enum_values, length=32),
        nullable=False,
        default=PenaltyType.FLAT,
    )
    penalty_flat_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=ZERO
    )
    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    penalty_applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Reminders
    reminder_days: Mapped[list[int]] = mapped_column(
        JSON, nullable=False, default=lambda: [7, 3, 1]
    )
    max_reminders: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    reminders_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    invoice_grouping: Mapped[InvoiceGrouping] = mapped_column(
        SQLEnum(InvoiceGrouping, native_enum=False, values_callable=_enum_values, length=32),
        nullable=False,
        default=InvoiceGrouping.PER_UNIT,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    payments: Mapped[list["DemandPayment"]] = relationship(  # noqa: F821
        "DemandPayment",
        back_populates="demand",
        order_by="DemandPayment.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("building_id", "flat_id", "period", name="uq_demand_flat_period"),
        Index("idx_demand_building_status", "building_id", "status"),
        Index("idx_demand_due_date", "due_date"),
    )

    @property
    def penalty_config(self) -> PenaltyConfig:
        """Penalty settings as a value object."""
        return PenaltyConfig(
            type=PenaltyType(self.penalty_type),
            flat_amount=to_money(self.penalty_flat_amount),
            grace_period_days=self.grace_period_days or 0,
        )

    @property
    def reminders_config(self) -> RemindersConfig:
        """Reminder settings as a value object."""
        return RemindersConfig(
            reminder_days=list(self.reminder_days or []),
            max_reminders=self.max_reminders or 0,
        )

    @property
    def is_paid(self) -> bool:
        return self.status == DemandStatus.PAID

    def check_invariants(self) -> None:
        """Raise InvariantViolationError if any monetary invariant is broken."""
        base = to_money(self.base_amount)
        ground_rent = to_money(self.ground_rent_amount)
        penalty = to_money(self.penalty_amount_applied)
        total = to_money(self.total_amount_due)
        paid = to_money(self.amount_paid)

        if min(base, ground_rent, penalty, total) < ZERO:
            raise InvariantViolationError(self.id, "amounts must be non-negative")
        if total != base + ground_rent + penalty:
            raise InvariantViolationError(
                self.id, "total_amount_due == base_amount + ground_rent_amount + penalty"
            )
        if to_money(self.outstanding_amount) != outstanding(total, paid):
            raise InvariantViolationError(
                self.id, "outstanding_amount == max(0, total_amount_due - amount_paid)"
            )
        history_total = sum((to_money(p.amount) for p in self.payments), ZERO)
        if paid != history_total:
            raise InvariantViolationError(self.id, "amount_paid == sum(payment history)")
        if (self.reminders_sent or 0) > (self.max_reminders or 0):
            raise InvariantViolationError(self.id, "reminders_sent <= max_reminders")
        if penalty > ZERO and self.penalty_applied_at is None:
            raise InvariantViolationError(self.id, "penalty requires penalty_applied_at")
        if paid > ZERO and paid >= total and self.status != DemandStatus.PAID:
            raise InvariantViolationError(self.id, "fully paid demand must be Paid")
        if self.status == DemandStatus.PAID and paid < total:
            raise InvariantViolationError(self.id, "Paid demand must be fully paid")
        if paid == ZERO and self.status == DemandStatus.PARTIALLY_PAID:
            raise InvariantViolationError(self.id, "unpaid demand cannot be Partially Paid")

    def to_document(self) -> dict:
        """Persisted document shape with the original camelCase field names."""
        penalty = self.penalty_config
        reminders = self.reminders_config
        return {
            "id": self.id,
            "buildingId": self.building_id,
            "flatId": self.flat_id,
            "flatNumber": self.flat_number,
            "residentUid": self.resident_uid,
            "residentName": self.resident_name,
            "financialQuarterDisplayString": self.period,
            "areaSqFt": self.area_sq_ft,
            "rateApplied": self.rate_applied,
            "baseAmount": self.base_amount,
            "groundRentAmount": self.ground_rent_amount,
            "penaltyAmountApplied": self.penalty_amount_applied,
            "totalAmountDue": self.total_amount_due,
            "amountPaid": self.amount_paid,
            "outstandingAmount": self.outstanding_amount,
            "dueDate": self.due_date,
            "issuedDate": self.issued_date,
            "status": DemandStatus(self.status).value,
            "paymentHistory": [payment.to_document() for payment in self.payments],
            "notes": self.notes,
            "issuedByUid": self.issued_by_uid,
            "invoiceGrouping": InvoiceGrouping(self.invoice_grouping).value,
            "penaltyConfig": {
                "type": penalty.type.value,
                "flatAmount": penalty.flat_amount,
                "gracePeriodDays": penalty.grace_period_days,
            },
            "remindersConfig": {
                "reminderDays": reminders.reminder_days,
                "maxReminders": reminders.max_reminders,
            },
            "remindersSent": self.reminders_sent,
            "lastReminderSent": self.last_reminder_sent_at,
            "penaltyAppliedAt": self.penalty_applied_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<ServiceChargeDemand(id={self.id}, flat_number={self.flat_number!r}, "
            f"period={self.period!r}, status={self.status}, "
            f"total={self.total_amount_due}, outstanding={self.outstanding_amount})>"
        )


__all__ = [
    "DemandStatus",
    "InvoiceGrouping",
    "PenaltyConfig",
    "PenaltyType",
    "RemindersConfig",
    "ServiceChargeDemand",
]
