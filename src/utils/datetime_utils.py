"""
Date and timestamp helpers shared by the store and the presenters.

Calendar dates travel as YYYY-MM-DD strings; timestamps are rendered as
RFC 3339 in UTC.
"""

import calendar
import re
from datetime import date, datetime
from typing import Optional, Tuple

import pytz

from ..exceptions import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_iso_date(value: str, field: str = "date") -> date:
    """
    Parse a strict YYYY-MM-DD string.

    Raises:
        ValidationError: if the value is empty or not a real calendar date
    """
    if not value or not _DATE_RE.match(value):
        raise ValidationError(f"invalid {field} format: {value!r}")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"invalid {field}: {value!r}")


def month_range(year_month: str) -> Tuple[date, date]:
    """
    First and last day of a YYYY-MM month, both inclusive.

    Raises:
        ValidationError: if the value is not a valid year-month
    """
    match = _YEAR_MONTH_RE.match(year_month or "")
    if not match:
        raise ValidationError(f"invalid year-month format: {year_month!r}")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"invalid year-month: {year_month!r}")

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def to_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert a datetime to timezone-aware UTC.

    Naive values are assumed to already be UTC (SQLite drops the offset).
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(pytz.UTC)

    return pytz.UTC.localize(dt)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as RFC 3339, e.g. 2024-03-15T09:30:00+00:00."""
    aware = to_aware_utc(dt)
    if aware is None:
        return None
    return aware.isoformat(timespec="seconds")
