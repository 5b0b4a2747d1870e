"""
Penalty sweep CLI - entry point for the scheduled late-payment job.

Applies one-time penalties to every Issued/Partially Paid demand of a building
whose grace period has elapsed, and sends reminders on request.

Usage:
    python -m blockcharge.cli.sweep penalties BUILDING_ID [--now 2024-01-10T06:00:00+00:00]
    python -m blockcharge.cli.sweep remind DEMAND_ID

Exit codes: 0 on success, 1 on failure.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone

import click
from dotenv import load_dotenv

from blockcharge import __version__
from blockcharge.config import settings
from blockcharge.errors import ServiceChargeError
from blockcharge.logging import setup_server_logging

logger = logging.getLogger(__name__)


def parse_now(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"Not an ISO-8601 timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@click.group()
@click.version_option(version=__version__, prog_name="blockcharge-sweep")
@click.option("--log-file", default="logs/sweep.log", show_default=True, help="Log file path")
@click.option("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
@click.option("--database-url", default=None, help="Override DATABASE_URL")
@click.pass_context
def cli(ctx, log_file, log_level, database_url):
    """Scheduled service charge jobs."""
    load_dotenv()
    setup_server_logging(log_file, level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or settings.database_url


@contextmanager
def _open_session(ctx):
    """Session on a private engine; both are released when the command ends."""
    from sqlalchemy.orm import sessionmaker

    from blockcharge.database import build_engine

    engine = build_engine(ctx.obj["database_url"], settings.store_timeout_seconds)
    db = sessionmaker(autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@cli.command()
@click.argument("building_id")
@click.option("--now", "now_str", default=None, help="Evaluation time (ISO-8601); default: now")
@click.pass_context
def penalties(ctx, building_id, now_str):
    """Apply late-payment penalties for BUILDING_ID."""
    from blockcharge.services.penalty_engine import PenaltyReminderEngine

    now = parse_now(now_str)
    with _open_session(ctx) as db:
        try:
            penalised = PenaltyReminderEngine(db).apply_penalties(building_id, now=now)
        except ServiceChargeError as e:
            logger.error("Penalty sweep failed for building %s: %s", building_id, e)
            click.echo(f"Penalty sweep failed: {e}", err=True)
            sys.exit(1)

    click.echo(f"Penalised {penalised} demand(s) in building {building_id}")


@cli.command()
@click.argument("demand_id", type=int)
@click.pass_context
def remind(ctx, demand_id):
    """Record a reminder for DEMAND_ID (no-op at the reminder cap)."""
    from blockcharge.services.penalty_engine import PenaltyReminderEngine

    with _open_session(ctx) as db:
        try:
            demand = PenaltyReminderEngine(db).send_reminder(demand_id)
            click.echo(
                f"Demand {demand_id}: {demand.reminders_sent}/{demand.max_reminders} reminders sent"
            )
        except ServiceChargeError as e:
            logger.error("Reminder failed for demand %s: %s", demand_id, e)
            click.echo(f"Reminder failed: {e}", err=True)
            sys.exit(1)


if __name__ == "__main__":
    cli()
