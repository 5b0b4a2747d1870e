"""Persistence interface for demands, billable units and the building ledger.

All database access of the service-charge core goes through DemandStore so
that SQLAlchemy failures surface as StoreError with a retryable flag.
"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from blockcharge.errors import ConcurrentUpdateError, DemandNotFoundError, StoreError
from blockcharge.models import (
    DemandPayment,
    DemandStatus,
    ExpenditureRecord,
    Flat,
    IncomeRecord,
    ServiceChargeDemand,
)

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy exceptions raised inside the block into StoreError.

    Args:
        operation: Short description used in the error message
    """
    try:
        yield
    except StaleDataError as e:
        logger.warning("Concurrent update detected during %s: %s", operation, e)
        raise ConcurrentUpdateError(f"Concurrent update during {operation}") from e
    except (OperationalError, PoolTimeoutError) as e:
        logger.error("Backing store unavailable during %s: %s", operation, e)
        raise StoreError(f"Store unavailable during {operation}", retryable=True) from e
    except IntegrityError as e:
        logger.error("Constraint violation during %s: %s", operation, e)
        raise StoreError(f"Constraint violation during {operation}", retryable=False) from e
    except SQLAlchemyError as e:
        logger.error("Store error during %s: %s", operation, e)
        raise StoreError(f"Store error during {operation}", retryable=False) from e


class DemandStore:
    """SQLAlchemy-backed store for the service-charge core.

    Read-modify-write callers load the demand with ``get_demand_for_update``
    (row lock where the database supports it) and rely on the demand's version
    counter to reject writes based on a stale read.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    # Units

    def find_units_by_building(self, building_id: str) -> list[Flat]:
        """Active flats of a building ordered by flat number."""
        with store_errors("find_units_by_building"):
            return list(
                self.db.execute(
                    select(Flat)
                    .where(Flat.building_id == building_id, Flat.is_active.is_(True))
                    .order_by(Flat.flat_number)
                ).scalars()
            )

    # Demands

    def insert_demands(self, demands: Iterable[ServiceChargeDemand]) -> list[int]:
        """Add demands and flush so ids are assigned. Caller commits.

        Returns:
            Ids of the inserted demands in input order
        """
        demands = list(demands)
        with store_errors("insert_demands"):
            self.db.add_all(demands)
            self.db.flush()
        return [demand.id for demand in demands]

    def get_demand(self, demand_id: int) -> ServiceChargeDemand:
        """Fetch a demand by id.

        Raises:
            DemandNotFoundError: If no demand has this id
        """
        with store_errors("get_demand"):
            demand = self.db.get(ServiceChargeDemand, demand_id)
        if demand is None:
            raise DemandNotFoundError(demand_id)
        return demand

    def get_demand_for_update(self, demand_id: int) -> ServiceChargeDemand:
        """Fetch a demand with a row lock, refreshing any cached state.

        Raises:
            DemandNotFoundError: If no demand has this id
        """
        with store_errors("get_demand_for_update"):
            demand = self.db.execute(
                select(ServiceChargeDemand)
                .where(ServiceChargeDemand.id == demand_id)
                .options(selectinload(ServiceChargeDemand.payments))
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        if demand is None:
            raise DemandNotFoundError(demand_id)
        return demand

    def update_demand(self, demand_id: int, **fields) -> ServiceChargeDemand:
        """Apply field changes to a demand and flush them.

        The UPDATE is guarded by the demand's version counter, so it fails with
        ConcurrentUpdateError if another writer committed since it was read.
        """
        demand = self.get_demand(demand_id)
        for name, value in fields.items():
            if not hasattr(ServiceChargeDemand, name):
                raise AttributeError(f"ServiceChargeDemand has no field {name!r}")
            setattr(demand, name, value)
        with store_errors("update_demand"):
            self.db.flush()
        return demand

    def add_payment(self, demand: ServiceChargeDemand, payment: DemandPayment) -> DemandPayment:
        """Append a payment to a demand's history."""
        demand.payments.append(payment)
        return payment

    def find_payment_by_idempotency_key(
        self, demand_id: int, idempotency_key: str
    ) -> DemandPayment | None:
        with store_errors("find_payment_by_idempotency_key"):
            return self.db.execute(
                select(DemandPayment).where(
                    DemandPayment.demand_id == demand_id,
                    DemandPayment.idempotency_key == idempotency_key,
                )
            ).scalar_one_or_none()

    def query_demands_by_building_and_status(
        self, building_id: str, statuses: Iterable[DemandStatus]
    ) -> list[ServiceChargeDemand]:
        """Demands of a building whose status is in ``statuses``, oldest due first."""
        statuses = list(statuses)
        with store_errors("query_demands_by_building_and_status"):
            return list(
                self.db.execute(
                    select(ServiceChargeDemand)
                    .where(
                        ServiceChargeDemand.building_id == building_id,
                        ServiceChargeDemand.status.in_(statuses),
                    )
                    .order_by(ServiceChargeDemand.due_date, ServiceChargeDemand.id)
                ).scalars()
            )

    def list_demands(self, building_id: str, period: str | None = None) -> list[ServiceChargeDemand]:
        """All demands of a building, newest due date first."""
        stmt = select(ServiceChargeDemand).where(ServiceChargeDemand.building_id == building_id)
        if period is not None:
            stmt = stmt.where(ServiceChargeDemand.period == period)
        stmt = stmt.order_by(ServiceChargeDemand.due_date.desc(), ServiceChargeDemand.id)
        with store_errors("list_demands"):
            return list(self.db.execute(stmt).scalars())

    def find_existing_flat_ids(self, building_id: str, period: str) -> set[str]:
        """Flat ids that already have a demand for (building, period)."""
        with store_errors("find_existing_flat_ids"):
            return set(
                self.db.execute(
                    select(ServiceChargeDemand.flat_id).where(
                        ServiceChargeDemand.building_id == building_id,
                        ServiceChargeDemand.period == period,
                    )
                ).scalars()
            )

    # Ledger

    def append_income_record(self, record: IncomeRecord) -> IncomeRecord:
        """Add an income entry to the current transaction."""
        with store_errors("append_income_record"):
            self.db.add(record)
            self.db.flush()
        return record

    def append_expenditure_record(self, record: ExpenditureRecord) -> ExpenditureRecord:
        """Add an expenditure entry to the current transaction."""
        with store_errors("append_expenditure_record"):
            self.db.add(record)
            self.db.flush()
        return record

    def list_income(
        self, building_id: str, start_date: date | None = None, end_date: date | None = None
    ) -> list[IncomeRecord]:
        """Income entries of a building, newest first, optionally within a date range."""
        stmt = select(IncomeRecord).where(IncomeRecord.building_id == building_id)
        if start_date and end_date:
            stmt = stmt.where(IncomeRecord.date >= start_date, IncomeRecord.date <= end_date)
        stmt = stmt.order_by(IncomeRecord.date.desc(), IncomeRecord.id.desc())
        with store_errors("list_income"):
            return list(self.db.execute(stmt).scalars())

    def list_expenditure(
        self, building_id: str, start_date: date | None = None, end_date: date | None = None
    ) -> list[ExpenditureRecord]:
        """Expenditure entries of a building, newest first, optionally within a date range."""
        stmt = select(ExpenditureRecord).where(ExpenditureRecord.building_id == building_id)
        if start_date and end_date:
            stmt = stmt.where(
                ExpenditureRecord.date >= start_date, ExpenditureRecord.date <= end_date
            )
        stmt = stmt.order_by(ExpenditureRecord.date.desc(), ExpenditureRecord.id.desc())
        with store_errors("list_expenditure"):
            return list(self.db.execute(stmt).scalars())

    # Transaction control

    def commit(self) -> None:
        """Commit the current transaction, rolling back if the commit fails."""
        try:
            with store_errors("commit"):
                self.db.commit()
        except StoreError:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()


__all__ = ["DemandStore", "store_errors"]
