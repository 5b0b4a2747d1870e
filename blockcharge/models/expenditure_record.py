"""Expenditure record model - immutable building expense ledger entries."""

import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Enum as SQLEnum, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from blockcharge.models import Base, BaseModel


class ExpenditureCategory(str, Enum):
    """Expense categories used in building financial summaries."""

    PROACTIVE_MAINTENANCE = "proactive_maintenance"
    REACTIVE_MAINTENANCE = "reactive_maintenance"
    SALARY = "salary"
    UTILITY = "utility"
    INSURANCE = "insurance"
    CLEANING = "cleaning"
    SECURITY = "security"
    OTHER = "other"


class MaintenanceTag(str, Enum):
    """Maintenance split reported in the summary."""

    PROACTIVE = "proactive"
    REACTIVE = "reactive"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class ExpenditureRecord(Base, BaseModel):
    """Expenditure ledger entry, created when an invoice is settled.

    Attributes:
        building_id: Building whose ledger owns the entry
        date: Date of the expense
        amount: Amount in currency units
        category: Expense category
        tag: Proactive/reactive tag for maintenance expenses
        description: Details of the expense
        related_invoice_id: Settled invoice (owned by the invoice workflow)
        vendor_name: Supplier name
        recorded_by_uid: User who recorded the expense
    """

    __tablename__ = "expenditure_records"

    building_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[ExpenditureCategory] = mapped_column(
        SQLEnum(ExpenditureCategory, native_enum=False, values_callable=_values, length=32),
        nullable=False,
    )
    tag: Mapped[MaintenanceTag | None] = mapped_column(
        SQLEnum(MaintenanceTag, native_enum=False, values_callable=_values, length=16),
        nullable=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    related_invoice_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vendor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recorded_by_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (Index("idx_expenditure_building_date", "building_id", "date"),)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<ExpenditureRecord(id={self.id}, amount={self.amount}, category={self.category})>"
        )


__all__ = ["ExpenditureCategory", "ExpenditureRecord", "MaintenanceTag"]
