"""Billing period parsing.

Periods are display strings such as ``"Q1 2024"``. Quarters are calendar
quarters: Q1 ends 31 March, Q2 30 June, Q3 30 September, Q4 31 December.
"""

import calendar
import logging
import re
from datetime import date

logger = logging.getLogger(__name__)

# "Q1 2024", "q3-2025", "Q4 FY2024", "2024 Q2"
_QUARTER_FIRST = re.compile(r"^\s*Q([1-4])[\s\-/]*(?:FY)?\s*(\d{4})\s*$", re.IGNORECASE)
_YEAR_FIRST = re.compile(r"^\s*(?:FY)?\s*(\d{4})[\s\-/]*Q([1-4])\s*$", re.IGNORECASE)


def parse_quarter(period: str | None) -> tuple[int, int] | None:
    """Parse a period display string into ``(quarter, year)``.

    Returns:
        Tuple of quarter (1-4) and year, or None if the string is not a quarter
    """
    if not period:
        return None
    match = _QUARTER_FIRST.match(period)
    if match:
        return int(match.group(1)), int(match.group(2))
    match = _YEAR_FIRST.match(period)
    if match:
        return int(match.group(2)), int(match.group(1))
    return None


def quarter_bounds(quarter: int, year: int) -> tuple[date, date]:
    """First and last calendar day of a quarter."""
    start_month = 3 * (quarter - 1) + 1
    end_month = start_month + 2
    last_day = calendar.monthrange(year, end_month)[1]
    return date(year, start_month, 1), date(year, end_month, last_day)


def period_bounds(period: str | None) -> tuple[date, date] | None:
    """Date range covered by a quarter period string, or None when unparseable."""
    parsed = parse_quarter(period)
    if parsed is None:
        return None
    return quarter_bounds(*parsed)


def period_due_date(period: str | None, today: date) -> date:
    """Due date for demands issued for ``period``: the last day of its quarter.

    A malformed period falls back to 31 December of ``today``'s year so that
    generation can still proceed; the fallback is logged.

    Args:
        period: Display string (e.g., "Q1 2024")
        today: Reference date for the fallback year

    Returns:
        Due date
    """
    bounds = period_bounds(period)
    if bounds is None:
        fallback = date(today.year, 12, 31)
        logger.warning(
            "Could not parse billing period %r; using fallback due date %s", period, fallback
        )
        return fallback
    return bounds[1]
