"""
Error taxonomy shared by the store, service and HTTP layers.

Every error carries an ErrorKind so callers classify failures by value.
"""

import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    CONSISTENCY = "consistency"
    STORAGE = "storage"


class TaskTrackerError(Exception):
    """Base exception for all domain failures."""

    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TaskTrackerError):
    """Malformed input (bad identifier, unparseable date, bad filter)."""
    kind = ErrorKind.VALIDATION


class NotFoundError(TaskTrackerError):
    """Requested entity not found."""
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(TaskTrackerError):
    """Caller is not the owner of the entity."""
    kind = ErrorKind.PERMISSION


class ConsistencyError(TaskTrackerError):
    """An internal invariant does not hold, e.g. a task without an owner account."""
    kind = ErrorKind.CONSISTENCY


class StorageError(TaskTrackerError):
    """Database transport or transaction failure."""
    kind = ErrorKind.STORAGE


class StorageConstraintError(StorageError):
    """Database constraint violation (duplicate, foreign key, etc)."""
    pass
