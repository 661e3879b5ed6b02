"""
Repository classes for database operations.

Each repository handles CRUD and queries for its aggregate.
"""

from .tasks import TaskRepository, get_task_repository
from .accounts import AccountRepository, get_account_repository

__all__ = [
    "TaskRepository",
    "get_task_repository",
    "AccountRepository",
    "get_account_repository",
]
