"""Payment ledger: applies payments to service charge demands.

Each payment:
- adds to amount_paid without clamping (overpayment drives outstanding to zero)
- recomputes outstanding_amount = max(0, total_amount_due - amount_paid)
- moves status to Paid when nothing is outstanding, else Partially Paid
- appends an immutable DemandPayment row
- writes a building IncomeRecord in the same transaction
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from blockcharge.errors import ValidationError
from blockcharge.models import (
    DemandPayment,
    DemandStatus,
    IncomeRecord,
    IncomeSource,
    PaymentMethod,
    ServiceChargeDemand,
)
from blockcharge.money import ZERO, outstanding, to_money
from blockcharge.services.demand_store import DemandStore

logger = logging.getLogger(__name__)


def next_status(current: DemandStatus, amount_paid: Decimal, outstanding_amount: Decimal) -> DemandStatus:
    """Status after a payment.

    Paid once nothing is outstanding; Partially Paid while money is still owed
    (this also moves an Overdue demand back to Partially Paid, the penalty stays
    applied); otherwise the current status is kept.
    """
    if outstanding_amount <= ZERO:
        return DemandStatus.PAID
    if amount_paid > ZERO:
        return DemandStatus.PARTIALLY_PAID
    return DemandStatus(current)


class PaymentLedger:
    """Records payments against demands.

    Updates to a single demand are serialised: the demand is read with a row
    lock and written under its version counter, so two concurrent payments
    cannot both build on the same prior amount_paid. The loser of a race gets
    ConcurrentUpdateError and must resubmit; pass an idempotency_key to make
    resubmission safe.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.store = DemandStore(db)

    def record_payment(
        self,
        demand_id: int,
        amount: Decimal,
        payment_date: date,
        method: PaymentMethod,
        reference: str | None = None,
        recorded_by: str | None = None,
        notes: str | None = None,
        idempotency_key: str | None = None,
        now: datetime | None = None,
    ) -> ServiceChargeDemand:
        """Apply a payment to a demand.

        Args:
            demand_id: Demand being paid
            amount: Payment amount (> 0); may exceed the outstanding balance
            payment_date: Date the resident paid
            method: Payment method
            reference: Bank/cheque reference (generated if omitted)
            recorded_by: User recording the payment
            notes: Optional notes
            idempotency_key: Client key; a repeated key returns the demand unchanged
            now: Recording timestamp (defaults to current UTC time)

        Returns:
            Updated ServiceChargeDemand

        Raises:
            ValidationError: If amount is not positive or method is unknown
            DemandNotFoundError: If the demand does not exist
            ConcurrentUpdateError: If another writer updated the demand concurrently
            StoreError: If the backing store fails
        """
        try:
            amount = to_money(amount)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if amount <= ZERO:
            logger.error("Invalid payment amount for demand %s: %s", demand_id, amount)
            raise ValidationError("Payment amount must be positive")
        try:
            method = PaymentMethod(method)
        except ValueError as e:
            raise ValidationError(f"Unknown payment method: {method!r}") from e

        recorded_at = now or datetime.now(timezone.utc)

        try:
            demand = self.store.get_demand_for_update(demand_id)

            if idempotency_key:
                existing = self.store.find_payment_by_idempotency_key(demand_id, idempotency_key)
                if existing is not None:
                    logger.info(
                        "Payment with idempotency key %s already recorded on demand %s",
                        idempotency_key,
                        demand_id,
                    )
                    self.store.rollback()
                    return self.store.get_demand(demand_id)

            new_paid = to_money(demand.amount_paid) + amount
            new_outstanding = outstanding(demand.total_amount_due, new_paid)
            new_status = next_status(demand.status, new_paid, new_outstanding)

            sequence = len(demand.payments) + 1
            payment_id = f"payment_{int(recorded_at.timestamp() * 1000)}_{sequence}"
            self.store.add_payment(
                demand,
                DemandPayment(
                    payment_id=payment_id,
                    amount=amount,
                    payment_date=payment_date,
                    method=method,
                    reference=reference or payment_id,
                    notes=notes,
                    recorded_by=recorded_by,
                    recorded_at=recorded_at,
                    idempotency_key=idempotency_key,
                ),
            )
            self.store.update_demand(
                demand.id,
                amount_paid=new_paid,
                outstanding_amount=new_outstanding,
                status=new_status,
            )

            self.store.append_income_record(
                IncomeRecord(
                    building_id=demand.building_id,
                    date=payment_date,
                    amount=amount,
                    source=IncomeSource.BUILDING_CHARGES,
                    description=f"Payment for {demand.flat_number} - {demand.period}",
                    related_demand_id=demand.id,
                    recorded_by_uid=recorded_by,
                )
            )

            demand.check_invariants()
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info(
            "Recorded payment: demand_id=%s amount=%s method=%s paid=%s outstanding=%s status=%s",
            demand_id,
            amount,
            method.value,
            new_paid,
            new_outstanding,
            new_status.value,
        )
        return demand

    def get_payment_history(self, demand_id: int) -> list[DemandPayment]:
        """Payments of a demand in the order they were recorded.

        Raises:
            DemandNotFoundError: If the demand does not exist
        """
        return list(self.store.get_demand(demand_id).payments)


__all__ = ["PaymentLedger", "next_status"]
