"""Initial schema: flats, service charge demands, payments and the building ledger.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    # Create flats table
    op.create_table(
        "flats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.String(length=64), nullable=False),
        sa.Column("flat_number", sa.String(length=50), nullable=False),
        sa.Column(
            "area_sq_ft",
            sa.Numeric(precision=12, scale=2),
            nullable=True,
            comment="Floor area in square feet; missing area bills as zero",
        ),
        sa.Column(
            "ground_rent",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0",
            comment="Fixed ground rent added to each period's demand",
        ),
        sa.Column("resident_uid", sa.String(length=128), nullable=True),
        sa.Column("resident_name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_flats_building_id", "building_id"),
        sa.Index("idx_flat_building_number", "building_id", "flat_number", unique=True),
    )

    # Create service_charge_demands table
    op.create_table(
        "service_charge_demands",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.String(length=64), nullable=False),
        sa.Column("flat_id", sa.String(length=64), nullable=False),
        sa.Column("flat_number", sa.String(length=255), nullable=False),
        sa.Column("resident_uid", sa.String(length=128), nullable=True),
        sa.Column("resident_name", sa.String(length=255), nullable=True),
        sa.Column("issued_by_uid", sa.String(length=128), nullable=True),
        sa.Column(
            "period",
            sa.String(length=64),
            nullable=False,
            comment="Billing period display string, e.g. 'Q1 2024'",
        ),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("issued_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("area_sq_ft", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("rate_applied", sa.Numeric(precision=12, scale=4), nullable=False),
        sa.Column("base_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("ground_rent_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("penalty_amount_applied", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_amount_due", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("outstanding_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("penalty_type", sa.String(length=32), nullable=False),
        sa.Column("penalty_flat_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("grace_period_days", sa.Integer(), nullable=False),
        sa.Column("penalty_applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_days", sa.JSON(), nullable=False),
        sa.Column("max_reminders", sa.Integer(), nullable=False),
        sa.Column("reminders_sent", sa.Integer(), nullable=False),
        sa.Column("last_reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_grouping", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("building_id", "flat_id", "period", name="uq_demand_flat_period"),
        sa.Index("idx_demand_building_status", "building_id", "status"),
        sa.Index("idx_demand_due_date", "due_date"),
    )

    # Create demand_payments table
    op.create_table(
        "demand_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("demand_id", sa.Integer(), nullable=False),
        sa.Column("payment_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("method", sa.String(length=32), nullable=False),
        sa.Column("reference", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(length=128), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["demand_id"], ["service_charge_demands.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("demand_id", "idempotency_key", name="uq_payment_idempotency_key"),
        sa.Index("ix_demand_payments_demand_id", "demand_id"),
    )

    # Create income_records table
    op.create_table(
        "income_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("related_demand_id", sa.Integer(), nullable=True),
        sa.Column("recorded_by_uid", sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["related_demand_id"], ["service_charge_demands.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("idx_income_building_date", "building_id", "date"),
    )

    # Create expenditure_records table
    op.create_table(
        "expenditure_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("tag", sa.String(length=16), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("related_invoice_id", sa.String(length=64), nullable=True),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.Column("recorded_by_uid", sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("idx_expenditure_building_date", "building_id", "date"),
    )


def downgrade() -> None:
    op.drop_table("expenditure_records")
    op.drop_table("income_records")
    op.drop_table("demand_payments")
    op.drop_table("service_charge_demands")
    op.drop_table("flats")
