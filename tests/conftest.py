"""Pytest configuration: in-memory SQLite database and API client fixtures."""

import os

# Set test database URL BEFORE any imports from blockcharge
# This ensures the module-level engine never touches a file database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from blockcharge.database import build_engine, get_db  # noqa: E402
from blockcharge.main import app  # noqa: E402
from blockcharge.models import (  # noqa: E402
    Base,
    DemandStatus,
    Flat,
    InvoiceGrouping,
    PenaltyType,
    ServiceChargeDemand,
)

BUILDING_ID = "bldg-1"


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite:///:memory:", timeout_seconds=5.0)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_demand(db_session):
    """Insert a demand with explicit amounts and dates."""

    def _make(
        total=Decimal("1000.00"),
        due_date=date(2024, 1, 1),
        grace_period_days=7,
        penalty_flat_amount=Decimal("50.00"),
        max_reminders=3,
        flat_number="1A",
        flat_id=None,
        period="Q4 2023",
        building_id=BUILDING_ID,
        **overrides,
    ) -> ServiceChargeDemand:
        total = Decimal(total)
        fields = dict(
            building_id=building_id,
            flat_id=flat_id or f"flat-{flat_number}",
            flat_number=flat_number,
            resident_uid=f"res-{flat_number}",
            resident_name=f"Resident {flat_number}",
            period=period,
            due_date=due_date,
            issued_date=datetime(2023, 10, 1, tzinfo=timezone.utc),
            area_sq_ft=total,
            rate_applied=Decimal("1"),
            base_amount=total,
            ground_rent_amount=Decimal("0.00"),
            penalty_amount_applied=Decimal("0.00"),
            total_amount_due=total,
            amount_paid=Decimal("0.00"),
            outstanding_amount=total,
            status=DemandStatus.ISSUED,
            penalty_type=PenaltyType.FLAT,
            penalty_flat_amount=Decimal(penalty_flat_amount),
            grace_period_days=grace_period_days,
            reminder_days=[7, 3, 1],
            max_reminders=max_reminders,
            reminders_sent=0,
            invoice_grouping=InvoiceGrouping.PER_UNIT,
        )
        fields.update(overrides)
        demand = ServiceChargeDemand(**fields)
        db_session.add(demand)
        db_session.commit()
        return demand

    return _make


@pytest.fixture
def flats(db_session):
    """Three active flats and one inactive flat in the test building."""
    rows = [
        Flat(
            building_id=BUILDING_ID,
            flat_number="1A",
            area_sq_ft=Decimal("850"),
            ground_rent=Decimal("100"),
            resident_uid="res-alice",
            resident_name="Alice",
        ),
        Flat(
            building_id=BUILDING_ID,
            flat_number="1B",
            area_sq_ft=Decimal("600"),
            ground_rent=Decimal("0"),
            resident_uid="res-bob",
            resident_name="Bob",
        ),
        Flat(
            building_id=BUILDING_ID,
            flat_number="2A",
            area_sq_ft=Decimal("400"),
            ground_rent=Decimal("50"),
            resident_uid="res-alice",
            resident_name="Alice",
        ),
        Flat(
            building_id=BUILDING_ID,
            flat_number="9Z",
            area_sq_ft=Decimal("999"),
            is_active=False,
        ),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def client(session_factory):
    """FastAPI test client bound to the test database."""

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()
