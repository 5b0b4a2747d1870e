"""Tests for DemandStore persistence and error translation."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from blockcharge.errors import ConcurrentUpdateError, DemandNotFoundError, StoreError
from blockcharge.models import DemandStatus, ServiceChargeDemand
from blockcharge.services.demand_store import DemandStore, store_errors

BUILDING_ID = "bldg-1"


class TestStoreErrors:
    """Test translation of SQLAlchemy failures."""

    def test_stale_data_is_concurrent_update(self):
        with pytest.raises(ConcurrentUpdateError) as exc_info:
            with store_errors("update_demand"):
                raise StaleDataError("version mismatch")

        assert exc_info.value.retryable is True

    def test_operational_error_is_retryable(self):
        with pytest.raises(StoreError) as exc_info:
            with store_errors("commit"):
                raise OperationalError("UPDATE ...", {}, Exception("database is locked"))

        assert exc_info.value.retryable is True
        assert not isinstance(exc_info.value, ConcurrentUpdateError)

    def test_integrity_error_is_not_retryable(self):
        with pytest.raises(StoreError) as exc_info:
            with store_errors("insert_demands"):
                raise IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed"))

        assert exc_info.value.retryable is False
        assert "Constraint violation during insert_demands" in str(exc_info.value)

    def test_other_sqlalchemy_errors(self):
        with pytest.raises(StoreError) as exc_info:
            with store_errors("list_demands"):
                raise SQLAlchemyError("boom")

        assert exc_info.value.retryable is False

    def test_non_database_errors_pass_through(self):
        with pytest.raises(KeyError):
            with store_errors("list_demands"):
                raise KeyError("x")


class TestDemandStore:
    """Test store queries and updates."""

    def test_get_demand_not_found(self, db_session):
        with pytest.raises(DemandNotFoundError, match="999 not found"):
            DemandStore(db_session).get_demand(999)

    def test_get_demand_for_update_not_found(self, db_session):
        with pytest.raises(DemandNotFoundError):
            DemandStore(db_session).get_demand_for_update(999)

    def test_query_by_status(self, db_session, make_demand):
        make_demand(flat_number="1A")
        make_demand(flat_number="1B", status=DemandStatus.PAID, amount_paid=Decimal("1000"), outstanding_amount=Decimal("0"))
        make_demand(flat_number="1C", due_date=date(2023, 12, 1))

        rows = DemandStore(db_session).query_demands_by_building_and_status(
            BUILDING_ID, [DemandStatus.ISSUED]
        )

        assert [d.flat_number for d in rows] == ["1C", "1A"]

    def test_find_existing_flat_ids(self, db_session, make_demand):
        make_demand(flat_id="u1", period="Q1 2024")
        make_demand(flat_id="u2", flat_number="1B", period="Q2 2024")

        assert DemandStore(db_session).find_existing_flat_ids(BUILDING_ID, "Q1 2024") == {"u1"}

    def test_unique_constraint_enforced(self, db_session, make_demand):
        make_demand(flat_id="u1", period="Q1 2024")
        duplicate = ServiceChargeDemand(
            building_id=BUILDING_ID,
            flat_id="u1",
            flat_number="1A",
            period="Q1 2024",
            due_date=date(2024, 3, 31),
            issued_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            total_amount_due=Decimal("1"),
            outstanding_amount=Decimal("1"),
        )
        store = DemandStore(db_session)

        with pytest.raises(StoreError) as exc_info:
            store.insert_demands([duplicate])

        assert exc_info.value.retryable is False
        store.rollback()

    def test_update_demand_unknown_field(self, db_session, make_demand):
        demand = make_demand()

        with pytest.raises(AttributeError):
            DemandStore(db_session).update_demand(demand.id, no_such_field=1)

    def test_stale_version_raises_concurrent_update(self, db_session, make_demand):
        """A write based on a stale read is rejected instead of overwriting."""
        demand = make_demand()
        store = DemandStore(db_session)
        loaded = store.get_demand_for_update(demand.id)

        # Simulate another writer committing in between
        db_session.execute(
            text("UPDATE service_charge_demands SET version = version + 1 WHERE id = :id"),
            {"id": demand.id},
        )

        with pytest.raises(ConcurrentUpdateError):
            store.update_demand(loaded.id, reminders_sent=1)
        store.rollback()

    def test_version_increments_on_update(self, db_session, make_demand):
        demand = make_demand()
        store = DemandStore(db_session)
        before = demand.version

        store.update_demand(demand.id, reminders_sent=1)
        store.commit()

        assert demand.version == before + 1
