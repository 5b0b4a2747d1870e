"""Building financial reporting over demands and the income/expenditure ledger.

Net cash flow = total income - total expenditure for the period.
Maintenance spend is split into proactive and reactive using the entry's tag,
falling back to the maintenance category when no tag was recorded.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from blockcharge.errors import ValidationError
from blockcharge.models import (
    DemandStatus,
    ExpenditureCategory,
    ExpenditureRecord,
    IncomeRecord,
    IncomeSource,
    MaintenanceTag,
    ServiceChargeDemand,
)
from blockcharge.money import ZERO, to_money
from blockcharge.periods import period_bounds
from blockcharge.services.demand_store import DemandStore

logger = logging.getLogger(__name__)

RECENT_DEMANDS_LIMIT = 5
RECENT_ENTRIES_LIMIT = 10

_MAINTENANCE_CATEGORIES = {
    ExpenditureCategory.PROACTIVE_MAINTENANCE: MaintenanceTag.PROACTIVE,
    ExpenditureCategory.REACTIVE_MAINTENANCE: MaintenanceTag.REACTIVE,
}


@dataclass
class DemandStats:
    """Totals over all demands of a building."""

    total_demands: int = 0
    total_amount: Decimal = ZERO
    total_collected: Decimal = ZERO
    outstanding_amount: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    by_status: dict[str, int] = field(default_factory=dict)
    recent_demands: list[ServiceChargeDemand] = field(default_factory=list)


@dataclass
class IncomeStats:
    total_income: Decimal = ZERO
    by_source: dict[str, Decimal] = field(default_factory=dict)
    recent_entries: list[IncomeRecord] = field(default_factory=list)


@dataclass
class ExpenditureStats:
    total_expenditure: Decimal = ZERO
    by_category: dict[str, Decimal] = field(default_factory=dict)
    maintenance_breakdown: dict[str, Decimal] = field(
        default_factory=lambda: {tag.value: ZERO for tag in MaintenanceTag}
    )
    recent_entries: list[ExpenditureRecord] = field(default_factory=list)


@dataclass
class BuildingFinancialSummary:
    building_id: str
    period: str | None
    total_income: Decimal
    total_expenditure: Decimal
    net_cash_flow: Decimal
    income_breakdown: dict[str, Decimal]
    expenditure_breakdown: dict[str, Decimal]
    maintenance_breakdown: dict[str, Decimal]
    generated_at: datetime


class FinancialSummaryService:
    """Read-side reporting for a building's service charges and ledger."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.store = DemandStore(db)

    def get_demand_stats(self, building_id: str) -> DemandStats:
        """Counts by status and billed/collected/outstanding totals.

        ``overdue_amount`` is the outstanding balance of Overdue demands only.
        """
        demands = self.store.list_demands(building_id)
        stats = DemandStats(total_demands=len(demands), recent_demands=demands[:RECENT_DEMANDS_LIMIT])
        for demand in demands:
            status = DemandStatus(demand.status).value
            stats.by_status[status] = stats.by_status.get(status, 0) + 1
            stats.total_amount += to_money(demand.total_amount_due)
            stats.total_collected += to_money(demand.amount_paid)
            stats.outstanding_amount += to_money(demand.outstanding_amount)
            if demand.status == DemandStatus.OVERDUE:
                stats.overdue_amount += to_money(demand.outstanding_amount)
        return stats

    def get_overdue_demands(self, building_id: str, now: datetime | None = None) -> list[ServiceChargeDemand]:
        """Unpaid demands whose due date has passed, penalised or not."""
        today = (now or datetime.now(timezone.utc)).date()
        return [
            demand
            for demand in self.store.list_demands(building_id)
            if demand.status != DemandStatus.PAID and demand.due_date < today
        ]

    def search_demands(self, building_id: str, term: str) -> list[ServiceChargeDemand]:
        """Case-insensitive match on flat number, resident name or period."""
        needle = (term or "").strip().lower()
        demands = self.store.list_demands(building_id)
        if not needle:
            return demands
        return [
            demand
            for demand in demands
            if needle in (demand.flat_number or "").lower()
            or needle in (demand.resident_name or "").lower()
            or needle in (demand.period or "").lower()
        ]

    def record_expenditure(
        self,
        building_id: str,
        expense_date: date,
        amount: Decimal,
        category: ExpenditureCategory,
        description: str,
        tag: MaintenanceTag | None = None,
        related_invoice_id: str | None = None,
        vendor_name: str | None = None,
        recorded_by_uid: str | None = None,
    ) -> ExpenditureRecord:
        """Append an expenditure entry to the building ledger.

        Raises:
            ValidationError: If the amount is not positive or an enum value is unknown
        """
        try:
            amount = to_money(amount)
            category = ExpenditureCategory(category)
            tag = MaintenanceTag(tag) if tag is not None else None
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if amount <= ZERO:
            raise ValidationError("Expenditure amount must be positive")

        record = ExpenditureRecord(
            building_id=building_id,
            date=expense_date,
            amount=amount,
            category=category,
            tag=tag,
            description=description,
            related_invoice_id=related_invoice_id,
            vendor_name=vendor_name,
            recorded_by_uid=recorded_by_uid,
        )
        try:
            self.store.append_expenditure_record(record)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info(
            "Recorded expenditure: building=%s amount=%s category=%s",
            building_id,
            amount,
            category.value,
        )
        return record

    def get_income_stats(self, building_id: str, period: str | None = None) -> IncomeStats:
        """Income totals grouped by source, optionally limited to a quarter."""
        entries = self.store.list_income(building_id, *self._date_range(period))
        stats = IncomeStats(recent_entries=entries[:RECENT_ENTRIES_LIMIT])
        for entry in entries:
            amount = to_money(entry.amount)
            source = IncomeSource(entry.source).value
            stats.total_income += amount
            stats.by_source[source] = stats.by_source.get(source, ZERO) + amount
        return stats

    def get_expenditure_stats(self, building_id: str, period: str | None = None) -> ExpenditureStats:
        """Expenditure totals grouped by category with the maintenance split."""
        entries = self.store.list_expenditure(building_id, *self._date_range(period))
        stats = ExpenditureStats(recent_entries=entries[:RECENT_ENTRIES_LIMIT])
        for entry in entries:
            amount = to_money(entry.amount)
            category = ExpenditureCategory(entry.category)
            stats.total_expenditure += amount
            stats.by_category[category.value] = stats.by_category.get(category.value, ZERO) + amount

            tag = MaintenanceTag(entry.tag) if entry.tag else _MAINTENANCE_CATEGORIES.get(category)
            if tag is not None and category in _MAINTENANCE_CATEGORIES:
                stats.maintenance_breakdown[tag.value] += amount
        return stats

    def get_building_financial_summary(
        self, building_id: str, period: str | None = None
    ) -> BuildingFinancialSummary:
        """Income, expenditure and net cash flow for a building.

        Args:
            building_id: Building to summarise
            period: Quarter display string (e.g., "Q1 2024"); None covers all time
        """
        income = self.get_income_stats(building_id, period)
        expenditure = self.get_expenditure_stats(building_id, period)
        summary = BuildingFinancialSummary(
            building_id=building_id,
            period=period,
            total_income=income.total_income,
            total_expenditure=expenditure.total_expenditure,
            net_cash_flow=income.total_income - expenditure.total_expenditure,
            income_breakdown=income.by_source,
            expenditure_breakdown=expenditure.by_category,
            maintenance_breakdown=expenditure.maintenance_breakdown,
            generated_at=datetime.now(timezone.utc),
        )
        logger.debug(
            "Financial summary for %s (%s): income=%s expenditure=%s net=%s",
            building_id,
            period or "all time",
            summary.total_income,
            summary.total_expenditure,
            summary.net_cash_flow,
        )
        return summary

    @staticmethod
    def _date_range(period: str | None) -> tuple[date | None, date | None]:
        if period is None:
            return None, None
        bounds = period_bounds(period)
        if bounds is None:
            raise ValidationError(f"Unrecognised billing period: {period!r}")
        return bounds


__all__ = [
    "BuildingFinancialSummary",
    "DemandStats",
    "ExpenditureStats",
    "FinancialSummaryService",
    "IncomeStats",
]
