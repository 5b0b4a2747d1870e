"""Income record model - immutable building income ledger entries."""

import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Enum as SQLEnum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from blockcharge.models import Base, BaseModel


class IncomeSource(str, Enum):
    """Where building income came from."""

    BUILDING_CHARGES = "building_charges"
    PENALTY = "penalty"
    INTEREST = "interest"
    MISCELLANEOUS = "miscellaneous"
    OTHER = "other"


class IncomeRecord(Base, BaseModel):
    """Income ledger entry, created when a payment is recorded.

    Attributes:
        building_id: Building whose ledger owns the entry
        date: Date the money was received
        amount: Amount in currency units
        source: Income source category
        description: Human-readable description
        related_demand_id: Demand the payment settled (if any)
        recorded_by_uid: User who recorded the underlying event
    """

    __tablename__ = "income_records"

    building_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    source: Mapped[IncomeSource] = mapped_column(
        SQLEnum(
            IncomeSource,
            native_enum=False,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
            length=32,
        ),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    related_demand_id: Mapped[int | None] = mapped_column(
        ForeignKey("service_charge_demands.id"), nullable=True
    )
    recorded_by_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (Index("idx_income_building_date", "building_id", "date"),)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<IncomeRecord(id={self.id}, amount={self.amount}, source={self.source})>"


__all__ = ["IncomeRecord", "IncomeSource"]
