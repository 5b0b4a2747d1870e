"""Demand generation: one service charge demand per billable unit per period.

Amounts:
- base_amount = area * rate_per_area, rounded half-up to the minor unit
- total_amount_due = base_amount + fixed charge (ground rent)
- outstanding_amount = total_amount_due, amount_paid = 0, status = Issued

Re-running generation for a period only creates demands for units that do not
have one yet; the (building_id, flat_id, period) unique constraint backs this up.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from blockcharge.config import settings
from blockcharge.errors import UnsupportedPenaltyTypeError, ValidationError
from blockcharge.models import (
    DemandStatus,
    InvoiceGrouping,
    PenaltyConfig,
    PenaltyType,
    RemindersConfig,
    ServiceChargeDemand,
)
from blockcharge.money import ZERO, to_money
from blockcharge.periods import period_due_date
from blockcharge.services.demand_store import DemandStore

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.0001")


@dataclass
class BillableUnit:
    """Caller-supplied unit data used to price a demand."""

    unit_id: str
    unit_number: str
    area: Decimal | None = None
    fixed_charge: Decimal = ZERO
    resident_id: str | None = None
    resident_name: str | None = None


def default_penalty_config() -> PenaltyConfig:
    return PenaltyConfig(
        type=PenaltyType.FLAT,
        flat_amount=to_money(settings.default_penalty_flat_amount),
        grace_period_days=settings.default_grace_period_days,
    )


def default_reminders_config() -> RemindersConfig:
    return RemindersConfig(
        reminder_days=list(settings.default_reminder_days),
        max_reminders=settings.default_max_reminders,
    )


def validate_penalty_config(config: PenaltyConfig) -> PenaltyConfig:
    """Reject penalty settings the engine cannot apply.

    Raises:
        UnsupportedPenaltyTypeError: If the type is not the flat fee
        ValidationError: If the amount or grace period is negative
    """
    try:
        penalty_type = PenaltyType(config.type)
    except ValueError as e:
        raise UnsupportedPenaltyTypeError(
            f"Unsupported penalty type {config.type!r}; only 'flat' is supported"
        ) from e
    flat_amount = to_money(config.flat_amount)
    if flat_amount < ZERO:
        raise ValidationError("Penalty flat amount must not be negative")
    if config.grace_period_days < 0:
        raise ValidationError("Grace period must not be negative")
    return PenaltyConfig(
        type=penalty_type, flat_amount=flat_amount, grace_period_days=config.grace_period_days
    )


def validate_reminders_config(config: RemindersConfig) -> RemindersConfig:
    """Raises ValidationError if the reminder cap is negative."""
    if config.max_reminders < 0:
        raise ValidationError("max_reminders must not be negative")
    return RemindersConfig(
        reminder_days=[int(day) for day in config.reminder_days],
        max_reminders=config.max_reminders,
    )


def _unit_amount(value, label: str, unit: BillableUnit) -> Decimal:
    try:
        return to_money(value)
    except ValueError as e:
        raise ValidationError(f"Unit {unit.unit_number} has an invalid {label}: {value!r}") from e


class DemandGenerator:
    """Issues service charge demands for a building and billing period."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.store = DemandStore(db)

    def generate_demands(
        self,
        building_id: str,
        period: str,
        rate_per_area: Decimal,
        units: list[BillableUnit],
        *,
        issued_by_uid: str | None = None,
        penalty_config: PenaltyConfig | None = None,
        reminders_config: RemindersConfig | None = None,
        invoice_grouping: InvoiceGrouping = InvoiceGrouping.PER_UNIT,
        include_ground_rent: bool = True,
        now: datetime | None = None,
    ) -> list[ServiceChargeDemand]:
        """Create and persist demands for the given units.

        Args:
            building_id: Building being billed
            period: Billing period display string (e.g., "Q1 2024")
            rate_per_area: Service charge rate per square foot (>= 0)
            units: Billable units; a unit without area bills as zero area
            issued_by_uid: Manager issuing the demands
            penalty_config: Late-payment penalty (defaults from settings)
            reminders_config: Reminder cap/offsets (defaults from settings)
            invoice_grouping: One demand per unit, or per resident
            include_ground_rent: Add each unit's fixed charge to its demand
            now: Issue timestamp (defaults to current UTC time)

        Returns:
            Newly created demands (units already billed for the period are skipped)

        Raises:
            ValidationError: If the rate, a unit's area or fixed charge is negative,
                or a config is invalid
        """
        try:
            rate = Decimal(str(rate_per_area))
        except ArithmeticError as e:
            raise ValidationError(f"Invalid rate per area: {rate_per_area!r}") from e
        if not rate.is_finite() or rate < 0:
            raise ValidationError("Rate per area must be a non-negative number")
        # rate_applied is stored to 4dp; price with the stored rate
        rate = rate.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

        penalty = validate_penalty_config(penalty_config or default_penalty_config())
        reminders = validate_reminders_config(reminders_config or default_reminders_config())
        grouping = InvoiceGrouping(invoice_grouping)

        if not units:
            logger.warning(
                "No billable units supplied for building %s period %s; no demands generated",
                building_id,
                period,
            )
            return []

        issued_at = now or datetime.now(timezone.utc)
        due_date = period_due_date(period, issued_at.date())

        existing = self.store.find_existing_flat_ids(building_id, period)

        demands = []
        for group, notes in self._group_units(units, grouping):
            primary = group[0]
            if primary.unit_id in existing:
                logger.warning(
                    "Demand for flat %s (%s) in period %s already exists; skipping",
                    primary.unit_number,
                    primary.unit_id,
                    period,
                )
                continue

            area = sum((self._unit_area(unit) for unit in group), ZERO)
            ground_rent = (
                sum((self._unit_fixed_charge(unit) for unit in group), ZERO)
                if include_ground_rent
                else ZERO
            )
            base_amount = to_money(area * rate)
            total = base_amount + ground_rent

            demands.append(
                ServiceChargeDemand(
                    building_id=building_id,
                    flat_id=primary.unit_id,
                    flat_number=", ".join(unit.unit_number for unit in group),
                    resident_uid=primary.resident_id,
                    resident_name=primary.resident_name,
                    issued_by_uid=issued_by_uid,
                    period=period,
                    due_date=due_date,
                    issued_date=issued_at,
                    area_sq_ft=area,
                    rate_applied=rate,
                    base_amount=base_amount,
                    ground_rent_amount=ground_rent,
                    penalty_amount_applied=ZERO,
                    total_amount_due=total,
                    amount_paid=ZERO,
                    outstanding_amount=total,
                    status=DemandStatus.ISSUED,
                    penalty_type=penalty.type,
                    penalty_flat_amount=penalty.flat_amount,
                    grace_period_days=penalty.grace_period_days,
                    reminder_days=reminders.reminder_days,
                    max_reminders=reminders.max_reminders,
                    reminders_sent=0,
                    invoice_grouping=grouping,
                    notes=notes,
                )
            )
            existing.add(primary.unit_id)

        for demand in demands:
            demand.check_invariants()

        if not demands:
            logger.info("All units of building %s already billed for %s", building_id, period)
            return []

        try:
            self.store.insert_demands(demands)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info(
            "Generated %d service charge demands: building=%s period=%s rate=%s due=%s",
            len(demands),
            building_id,
            period,
            rate,
            due_date,
        )
        return demands

    def generate_for_building(
        self, building_id: str, period: str, rate_per_area: Decimal, **options
    ) -> list[ServiceChargeDemand]:
        """Generate demands for every active flat of a building.

        Accepts the same keyword options as ``generate_demands``.
        """
        flats = self.store.find_units_by_building(building_id)
        units = [flat.to_billable_unit() for flat in flats]
        return self.generate_demands(building_id, period, rate_per_area, units, **options)

    @staticmethod
    def _unit_area(unit: BillableUnit) -> Decimal:
        if unit.area is None:
            logger.warning("Unit %s has no area; billing as zero area", unit.unit_number)
            return ZERO
        area = _unit_amount(unit.area, "area", unit)
        if area < ZERO:
            raise ValidationError(f"Unit {unit.unit_number} has a negative area")
        return area

    @staticmethod
    def _unit_fixed_charge(unit: BillableUnit) -> Decimal:
        fixed_charge = _unit_amount(unit.fixed_charge, "fixed charge", unit)
        if fixed_charge < ZERO:
            raise ValidationError(f"Unit {unit.unit_number} has a negative fixed charge")
        return fixed_charge

    @staticmethod
    def _group_units(
        units: list[BillableUnit], grouping: InvoiceGrouping
    ) -> list[tuple[list[BillableUnit], str | None]]:
        """Split units into demand groups.

        PER_RESIDENT combines units sharing a resident (first unit is primary);
        units without a resident are billed individually.
        """
        if grouping == InvoiceGrouping.PER_UNIT:
            return [([unit], None) for unit in units]

        by_resident: dict[str, list[BillableUnit]] = {}
        groups: list[list[BillableUnit]] = []
        for unit in units:
            if unit.resident_id is None:
                groups.append([unit])
                continue
            if unit.resident_id not in by_resident:
                by_resident[unit.resident_id] = []
                groups.append(by_resident[unit.resident_id])
            by_resident[unit.resident_id].append(unit)

        return [
            (group, f"Combined demand for {len(group)} unit(s)" if len(group) > 1 else None)
            for group in groups
        ]


__all__ = [
    "BillableUnit",
    "DemandGenerator",
    "default_penalty_config",
    "default_reminders_config",
    "validate_penalty_config",
    "validate_reminders_config",
]
