"""Utility modules for the Daily Task Tracker."""

from .datetime_utils import (
    parse_iso_date,
    month_range,
    format_date,
    to_aware_utc,
    format_timestamp,
)

from .validation import (
    is_valid_uuid,
    parse_uuid,
)

__all__ = [
    "parse_iso_date",
    "month_range",
    "format_date",
    "to_aware_utc",
    "format_timestamp",
    "is_valid_uuid",
    "parse_uuid",
]
