"""
Identifier validation utilities.

Identifiers are UUIDs in canonical lowercase text form. Store and service
code normalize every incoming id through these helpers so equality checks
(e.g. ownership) compare like with like.
"""

import uuid
from typing import Any

from ..exceptions import ValidationError


def is_valid_uuid(value: Any) -> bool:
    """Check whether a value parses as a UUID."""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError):
        return False


def parse_uuid(value: Any, field: str = "id") -> str:
    """
    Normalize a UUID to its canonical text form.

    Raises:
        ValidationError: if the value is not a well-formed UUID
    """
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        raise ValidationError(f"invalid {field}: {value!r}")
