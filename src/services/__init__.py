"""
Services for business logic.
"""

from .task_service import TaskService, get_task_service
from .account_service import AccountService, get_account_service, split_full_name

__all__ = [
    "TaskService",
    "get_task_service",
    "AccountService",
    "get_account_service",
    "split_full_name",
]
