"""
Relational store for the Daily Task Tracker.

Handles:
- Accounts linked to an OAuth provider identity
- Tasks and their ordered task items
- Connection pooling and the unit-of-work session scope
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    AccountDB,
    TaskDB,
    TaskItemDB,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "AccountDB",
    "TaskDB",
    "TaskItemDB",
]
