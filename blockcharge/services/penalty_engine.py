"""Penalty and reminder engine for unpaid service charge demands.

The penalty sweep is a batch job triggered externally (scheduler or CLI);
it never polls the clock on its own. Each demand is penalised at most once:
``penalty_applied_at`` is the guard, and once set the demand is skipped forever.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from blockcharge.config import settings
from blockcharge.errors import StoreError, UnsupportedPenaltyTypeError
from blockcharge.models import DemandStatus, PenaltyType, ServiceChargeDemand
from blockcharge.money import ZERO, outstanding, to_money
from blockcharge.services.demand_store import DemandStore

logger = logging.getLogger(__name__)

# Statuses scanned by the sweep; Paid and already-Overdue demands are never touched
PENALISABLE_STATUSES = (DemandStatus.ISSUED, DemandStatus.PARTIALLY_PAID)


def grace_deadline(demand: ServiceChargeDemand):
    """Last day of the grace period (due date + grace days)."""
    return demand.due_date + timedelta(days=demand.grace_period_days or 0)


def calculate_penalty(demand: ServiceChargeDemand, now: datetime) -> Decimal:
    """Penalty that would apply to ``demand`` at ``now``.

    Returns zero for Paid demands, demands already penalised, and demands
    still within their grace period. Whole days are compared, so a demand due
    1 January with 7 grace days becomes penalisable on 9 January.

    Raises:
        UnsupportedPenaltyTypeError: If the demand's penalty type is not flat
    """
    if demand.status not in PENALISABLE_STATUSES or demand.penalty_applied_at is not None:
        return ZERO
    if now.date() <= grace_deadline(demand):
        return ZERO
    if demand.penalty_type != PenaltyType.FLAT:
        raise UnsupportedPenaltyTypeError(
            f"Demand {demand.id} uses unsupported penalty type {demand.penalty_type!r}"
        )
    return to_money(demand.penalty_flat_amount)


class PenaltyReminderEngine:
    """Applies one-time late-payment penalties and counts reminders."""

    def __init__(self, db: Session, max_attempts: int | None = None):
        """Initialize engine.

        Args:
            db: SQLAlchemy database session
            max_attempts: Attempts per demand when a sweep write loses a race
                (default: settings.sweep_max_attempts)
        """
        self.db = db
        self.store = DemandStore(db)
        self.max_attempts = max_attempts or settings.sweep_max_attempts

    def apply_penalties(self, building_id: str, now: datetime | None = None) -> int:
        """Penalise every Issued/Partially Paid demand past its grace period.

        Each demand is updated and committed on its own so one failing demand
        does not hold back the rest. Retryable store errors on a demand are
        retried up to ``max_attempts`` times and then logged and skipped;
        other errors abort the sweep.

        Args:
            building_id: Building to sweep
            now: Evaluation time (defaults to current UTC time)

        Returns:
            Number of demands penalised by this call
        """
        now = now or datetime.now(timezone.utc)
        candidates = self.store.query_demands_by_building_and_status(
            building_id, PENALISABLE_STATUSES
        )
        candidate_ids = [
            demand.id for demand in candidates if calculate_penalty(demand, now) > ZERO
        ]
        # Release the read snapshot before per-demand transactions start
        self.store.rollback()

        penalised = 0
        skipped = 0
        for demand_id in candidate_ids:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    if self._penalise(demand_id, now):
                        penalised += 1
                    break
                except StoreError as e:
                    self.store.rollback()
                    if not e.retryable:
                        raise
                    if attempt == self.max_attempts:
                        skipped += 1
                        logger.error(
                            "Giving up on penalty for demand %s after %d attempts: %s",
                            demand_id,
                            attempt,
                            e,
                        )
                    else:
                        logger.warning(
                            "Retrying penalty for demand %s (attempt %d): %s",
                            demand_id,
                            attempt,
                            e,
                        )

        logger.info(
            "Penalty sweep for building %s at %s: %d penalised, %d skipped, %d scanned",
            building_id,
            now.isoformat(),
            penalised,
            skipped,
            len(candidates),
        )
        return penalised

    def _penalise(self, demand_id: int, now: datetime) -> bool:
        """Apply the penalty to one demand under a row lock. Returns True if applied."""
        try:
            demand = self.store.get_demand_for_update(demand_id)
            penalty = calculate_penalty(demand, now)
            if penalty <= ZERO:
                # Paid or penalised by someone else since the scan
                self.store.rollback()
                return False

            new_penalty = to_money(demand.penalty_amount_applied) + penalty
            new_total = to_money(demand.total_amount_due) + penalty
            self.store.update_demand(
                demand.id,
                penalty_amount_applied=new_penalty,
                total_amount_due=new_total,
                outstanding_amount=outstanding(new_total, demand.amount_paid),
                status=DemandStatus.OVERDUE,
                penalty_applied_at=now,
            )
            demand.check_invariants()
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info(
            "Applied penalty %s to demand %s (flat %s, period %s); new total %s",
            penalty,
            demand_id,
            demand.flat_number,
            demand.period,
            new_total,
        )
        return True

    def send_reminder(self, demand_id: int, now: datetime | None = None) -> ServiceChargeDemand:
        """Count a reminder for a demand, up to its configured maximum.

        The caller decides when a reminder is warranted; this only enforces the
        cap. At the cap the call is a silent no-op.

        Raises:
            DemandNotFoundError: If the demand does not exist
            ConcurrentUpdateError: If another writer updated the demand concurrently
        """
        now = now or datetime.now(timezone.utc)
        try:
            demand = self.store.get_demand_for_update(demand_id)
            if demand.reminders_sent >= demand.max_reminders:
                logger.info(
                    "Reminder cap reached for demand %s (%d/%d); not sending",
                    demand_id,
                    demand.reminders_sent,
                    demand.max_reminders,
                )
                self.store.rollback()
                return demand

            self.store.update_demand(
                demand.id,
                reminders_sent=demand.reminders_sent + 1,
                last_reminder_sent_at=now,
            )
            demand.check_invariants()
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info(
            "Reminder %d/%d recorded for demand %s (resident %s)",
            demand.reminders_sent,
            demand.max_reminders,
            demand_id,
            demand.resident_name,
        )
        return demand


__all__ = ["PENALISABLE_STATUSES", "PenaltyReminderEngine", "calculate_penalty", "grace_deadline"]
