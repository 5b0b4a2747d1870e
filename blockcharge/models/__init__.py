"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from blockcharge.models.demand_payment import DemandPayment, PaymentMethod  # noqa: E402
from blockcharge.models.expenditure_record import (  # noqa: E402
    ExpenditureCategory,
    ExpenditureRecord,
    MaintenanceTag,
)
from blockcharge.models.flat import Flat  # noqa: E402
from blockcharge.models.income_record import IncomeRecord, IncomeSource  # noqa: E402
from blockcharge.models.service_charge_demand import (  # noqa: E402
    DemandStatus,
    InvoiceGrouping,
    PenaltyConfig,
    PenaltyType,
    RemindersConfig,
    ServiceChargeDemand,
)

__all__ = [
    "Base",
    "BaseModel",
    "DemandPayment",
    "DemandStatus",
    "ExpenditureCategory",
    "ExpenditureRecord",
    "Flat",
    "IncomeRecord",
    "IncomeSource",
    "InvoiceGrouping",
    "MaintenanceTag",
    "PaymentMethod",
    "PenaltyConfig",
    "PenaltyType",
    "RemindersConfig",
    "ServiceChargeDemand",
]
