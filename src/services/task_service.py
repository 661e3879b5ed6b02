"""
Task service.

Handles business logic for:
- Listing and loading tasks together with their owner account
- Creating and replacing tasks (the store checks ownership on update)
- Ownership checks for delete, review and item output updates
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import Database, get_database
from ..database.repositories.base import unit_of_work
from ..database.repositories.tasks import TaskRepository, get_task_repository
from ..database.repositories.accounts import AccountRepository, get_account_repository
from ..exceptions import ConsistencyError, NotFoundError, PermissionDeniedError
from ..models.account import Account
from ..models.task import (
    Task,
    ListTasksCondition,
    CreateTaskItemInput,
    UpdateTaskItemInput,
)
from ..utils.validation import parse_uuid

logger = logging.getLogger(__name__)


class TaskService:
    """Service for task operations."""

    def __init__(
        self,
        task_repo: Optional[TaskRepository] = None,
        account_repo: Optional[AccountRepository] = None,
        db: Optional[Database] = None,
    ):
        self.db: Database = db or get_database()
        self.task_repo: TaskRepository = task_repo or get_task_repository()
        self.account_repo: AccountRepository = account_repo or get_account_repository()

    async def _resolve_owner(self, owner_id: str, session: Optional[AsyncSession] = None) -> Account:
        """Load the owner account of a task; its absence is an inconsistency."""
        owners = await self.account_repo.get_by_ids([owner_id], session=session)
        if not owners:
            logger.error(f"Owner account {owner_id} is missing for an existing task")
            raise ConsistencyError("Task owner account not found", details={"owner_id": owner_id})
        return owners[0]

    @staticmethod
    def _check_owner(task: Task, owner_id: str, action: str):
        if task.owner_id != parse_uuid(owner_id, "owner_id"):
            logger.warning(f"Account {owner_id} tried to {action} task {task.id} owned by {task.owner_id}")
            raise PermissionDeniedError(f"You do not have permission to {action} this task")

    # ==================== QUERIES ====================

    async def list_tasks(self, condition: ListTasksCondition) -> Tuple[List[Task], Optional[Account]]:
        """
        List tasks and the account that owns them.

        Returns:
            ([], None) when nothing matches, otherwise the tasks and their owner

        Raises:
            ConsistencyError: the owner cannot be resolved, or the result
                spans more than one owner
        """
        async with unit_of_work(self.db, None, "list tasks") as session:
            tasks = await self.task_repo.list_tasks(condition, session=session)
            if not tasks:
                return [], None

            owner_ids = {task.owner_id for task in tasks}
            if len(owner_ids) > 1:
                logger.error(f"Task list spans {len(owner_ids)} owners, expected one")
                raise ConsistencyError("Task list spans more than one owner")

            owner = await self._resolve_owner(tasks[0].owner_id, session=session)
            return tasks, owner

    async def get_by_id(self, task_id: str) -> Tuple[Optional[Task], Optional[Account]]:
        """Get a task and its owner, or (None, None)."""
        async with unit_of_work(self.db, None, f"get task {task_id}") as session:
            task = await self.task_repo.get_by_id(task_id, session=session)
            if task is None:
                return None, None

            owner = await self._resolve_owner(task.owner_id, session=session)
            return task, owner

    # ==================== COMMANDS ====================

    async def create(
        self,
        owner_id: str,
        title: str,
        date: str,
        items: List[CreateTaskItemInput],
    ) -> Tuple[Task, Account]:
        """Create a task with its items and return it with its owner."""
        async with unit_of_work(self.db, None, "create task") as session:
            task = await self.task_repo.create(owner_id, title, date, items, session=session)
            owner = await self._resolve_owner(task.owner_id, session=session)
            return task, owner

    async def update(
        self,
        task_id: str,
        owner_id: str,
        title: str,
        date: str,
        items: List[UpdateTaskItemInput],
    ) -> Tuple[Task, Account]:
        """
        Replace a task's fields and items.

        Raises:
            NotFoundError: task does not exist
            PermissionDeniedError: owner_id does not own the task
        """
        async with unit_of_work(self.db, None, f"update task {task_id}") as session:
            task = await self.task_repo.update(task_id, owner_id, title, date, items, session=session)
            owner = await self._resolve_owner(task.owner_id, session=session)
            return task, owner

    async def delete(self, task_id: str, owner_id: str) -> bool:
        async with unit_of_work(self.db, None, f"delete task {task_id}") as session:
            task = await self.task_repo.get_by_id(task_id, session=session)
            if task is None:
                raise NotFoundError("Task not found")
            self._check_owner(task, owner_id, "delete")

            return await self.task_repo.delete(task.id, session=session)

    async def update_review(
        self,
        task_id: str,
        owner_id: str,
        review: Optional[str],
    ) -> Tuple[Task, Account]:
        """Set or clear the review of a task owned by owner_id."""
        async with unit_of_work(self.db, None, f"review task {task_id}") as session:
            task = await self.task_repo.get_by_id(task_id, session=session)
            if task is None:
                raise NotFoundError("Task not found")
            self._check_owner(task, owner_id, "review")

            await self.task_repo.update_review(task.id, review, session=session)

            updated = await self.task_repo.get_by_id(task.id, session=session)
            owner = await self._resolve_owner(updated.owner_id, session=session)
            return updated, owner

    async def update_item_output(
        self,
        item_id: str,
        owner_id: str,
        output: str,
    ) -> Tuple[Task, Account]:
        """Record an item's output, completing it, and return the whole task."""
        async with unit_of_work(self.db, None, f"record output of task item {item_id}") as session:
            task = await self.task_repo.get_by_task_item_id(item_id, session=session)
            if task is None:
                raise NotFoundError("Task not found")
            self._check_owner(task, owner_id, "update")

            item_id = parse_uuid(item_id, "task_item_id")
            if not task.has_item(item_id):
                raise NotFoundError("Task item not found")

            await self.task_repo.update_item_output(item_id, output, session=session)

            updated = await self.task_repo.get_by_id(task.id, session=session)
            owner = await self._resolve_owner(updated.owner_id, session=session)
            return updated, owner


# Singleton
_task_service: Optional[TaskService] = None


def get_task_service() -> TaskService:
    """Get the task service singleton."""
    global _task_service
    if _task_service is None:
        _task_service = TaskService()
    return _task_service
