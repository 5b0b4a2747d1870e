"""Demand payment model - append-only payment history of a demand."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockcharge.models import Base, BaseModel


class PaymentMethod(str, Enum):
    """How the resident paid."""

    ONLINE = "Online"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"
    CASH = "Cash"
    OTHER = "Other"


class DemandPayment(Base, BaseModel):
    """Single payment applied to a service charge demand.

    Rows are only ever inserted; ordering by id gives the recording order.

    Attributes:
        demand_id: Demand the payment was applied to
        payment_id: Generated payment identifier ("payment_<epoch ms>")
        amount: Amount paid in currency units
        payment_date: Date the resident paid
        method: Payment method
        reference: Bank/cheque reference (defaults to payment_id)
        recorded_by: User who recorded the payment
        recorded_at: When the payment was recorded
        idempotency_key: Client key that makes retried submissions no-ops
    """

    __tablename__ = "demand_payments"

    demand_id: Mapped[int] = mapped_column(
        ForeignKey("service_charge_demands.id"), nullable=False, index=True
    )
    payment_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(
            PaymentMethod,
            native_enum=False,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
            length=32,
        ),
        nullable=False,
    )
    reference: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Relationships
    demand: Mapped["ServiceChargeDemand"] = relationship(  # noqa: F821
        "ServiceChargeDemand", back_populates="payments"
    )

    __table_args__ = (
        UniqueConstraint("demand_id", "idempotency_key", name="uq_payment_idempotency_key"),
    )

    def to_document(self) -> dict:
        """Payment history entry in the persisted document shape."""
        return {
            "paymentId": self.payment_id,
            "paymentDate": self.payment_date,
            "amount": self.amount,
            "method": PaymentMethod(self.method).value,
            "reference": self.reference,
            "notes": self.notes,
            "recordedByUid": self.recorded_by,
            "recordedAt": self.recorded_at,
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<DemandPayment(id={self.id}, demand_id={self.demand_id}, amount={self.amount})>"


__all__ = ["DemandPayment", "PaymentMethod"]
