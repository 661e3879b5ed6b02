"""
Task repository: the task aggregate lifecycle.

Handles:
- Listing tasks with owner / month / keyword filters and sorting
- Loading a task together with its ordered items
- Creating a task and its items in one transaction
- Replacing a task's items by id (update, insert, delete missing)
- Review and item output updates
- Deleting a task (items follow through the FK cascade)

Every method takes an optional ``session``. When given, the work joins that
unit of work and the caller decides when to commit.
"""

import logging
from datetime import timedelta
from typing import Optional, List

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .base import unit_of_work
from ..connection import Database, get_database
from ..models import TaskDB, TaskItemDB, utc_now
from ...exceptions import NotFoundError, PermissionDeniedError
from ...models.task import (
    Task,
    TaskItemStatus,
    TaskSort,
    ListTasksCondition,
    CreateTaskItemInput,
    UpdateTaskItemInput,
    calculate_statistics,
)
from ...utils.datetime_utils import parse_iso_date, month_range
from ...utils.validation import parse_uuid

logger = logging.getLogger(__name__)


# SQL orderings; the completion and quantity sorts start from newest first
_ORDERINGS = {
    TaskSort.NEWEST: (TaskDB.created_at.desc(), TaskDB.id),
    TaskSort.OLDEST: (TaskDB.created_at.asc(), TaskDB.id),
    TaskSort.DATE_ASC: (TaskDB.date.asc(), TaskDB.created_at.desc()),
    TaskSort.DATE_DESC: (TaskDB.date.desc(), TaskDB.created_at.desc()),
}


class TaskRepository:
    """Repository for the task aggregate."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    @staticmethod
    def _select_with_items():
        return (
            select(TaskDB)
            .options(selectinload(TaskDB.items))
            .execution_options(populate_existing=True)
        )

    async def _fetch(self, session: AsyncSession, task_id: str) -> Optional[TaskDB]:
        result = await session.execute(
            self._select_with_items().where(TaskDB.id == task_id)
        )
        return result.scalar_one_or_none()

    # ==================== QUERIES ====================

    async def list_tasks(
        self,
        condition: ListTasksCondition,
        session: Optional[AsyncSession] = None,
    ) -> List[Task]:
        """List tasks matching every supplied filter. Never returns None."""
        query = self._select_with_items()

        if condition.owner_id:
            query = query.where(TaskDB.owner_id == parse_uuid(condition.owner_id, "owner_id"))

        if condition.year_month:
            first_day, last_day = month_range(condition.year_month)
            query = query.where(TaskDB.date >= first_day, TaskDB.date <= last_day)

        if condition.keyword:
            item_matches = (
                select(TaskItemDB.id)
                .where(
                    TaskItemDB.task_id == TaskDB.id,
                    TaskItemDB.content.icontains(condition.keyword, autoescape=True),
                )
                .exists()
            )
            query = query.where(
                or_(
                    TaskDB.title.icontains(condition.keyword, autoescape=True),
                    item_matches,
                )
            )

        sort = self._resolve_sort(condition.sort)
        query = query.order_by(*_ORDERINGS.get(sort, _ORDERINGS[TaskSort.NEWEST]))

        async with unit_of_work(self.db, session, "list tasks") as active:
            result = await active.execute(query)
            tasks = [Task.model_validate(row) for row in result.scalars().all()]

        return self._sort_by_statistics(tasks, sort)

    @staticmethod
    def _resolve_sort(value: Optional[str]) -> TaskSort:
        try:
            return TaskSort(value) if value else TaskSort.NEWEST
        except ValueError:
            logger.debug(f"Unknown sort {value!r}, falling back to newest")
            return TaskSort.NEWEST

    @staticmethod
    def _sort_by_statistics(tasks: List[Task], sort: TaskSort) -> List[Task]:
        if sort in (TaskSort.HIGHEST_COMPLETION, TaskSort.LOWEST_COMPLETION):
            return sorted(
                tasks,
                key=lambda t: calculate_statistics(t).completion_rate,
                reverse=sort == TaskSort.HIGHEST_COMPLETION,
            )
        if sort in (TaskSort.MOST_QUANTITY, TaskSort.LEAST_QUANTITY):
            return sorted(
                tasks,
                key=lambda t: calculate_statistics(t).completed_duration_minutes,
                reverse=sort == TaskSort.MOST_QUANTITY,
            )
        return tasks

    async def get_by_id(self, task_id: str, session: Optional[AsyncSession] = None) -> Optional[Task]:
        """Get a task with its items, or None if it does not exist."""
        task_id = parse_uuid(task_id, "task_id")

        async with unit_of_work(self.db, session, f"get task {task_id}") as active:
            row = await self._fetch(active, task_id)
            return Task.model_validate(row) if row else None

    async def get_by_task_item_id(
        self, item_id: str, session: Optional[AsyncSession] = None
    ) -> Optional[Task]:
        """Get the task owning an item, with all of its items."""
        item_id = parse_uuid(item_id, "task_item_id")
        owning_task = select(TaskItemDB.task_id).where(TaskItemDB.id == item_id).scalar_subquery()

        async with unit_of_work(self.db, session, f"get task for item {item_id}") as active:
            result = await active.execute(
                self._select_with_items().where(TaskDB.id == owning_task)
            )
            row = result.scalar_one_or_none()
            return Task.model_validate(row) if row else None

    # ==================== COMMANDS ====================

    async def create(
        self,
        owner_id: str,
        title: str,
        date: str,
        items: List[CreateTaskItemInput],
        session: Optional[AsyncSession] = None,
    ) -> Task:
        """
        Create a task and all of its items atomically.

        Items always start as NotStarted without output, whatever status the
        caller supplied.
        """
        owner_id = parse_uuid(owner_id, "owner_id")
        task_date = parse_iso_date(date)

        async with unit_of_work(self.db, session, "create task") as active:
            now = utc_now()
            task = TaskDB(owner_id=owner_id, title=title, date=task_date, created_at=now, updated_at=now)
            task.items = [
                self._new_item(item_input, now + timedelta(microseconds=index))
                for index, item_input in enumerate(items)
            ]
            active.add(task)
            await active.flush()

            logger.info(f"Created task {task.id} with {len(items)} items for owner {owner_id}")
            return Task.model_validate(await self._fetch(active, task.id))

    @staticmethod
    def _new_item(item_input: CreateTaskItemInput, created_at, keep_status: bool = False) -> TaskItemDB:
        # Distinct created_at values keep insertion order as the tie-break for equal `order`
        status = item_input.status if keep_status else TaskItemStatus.NOT_STARTED
        return TaskItemDB(
            priority=item_input.priority.value,
            density=item_input.density.value,
            duration_time=int(item_input.duration_time),
            content=item_input.content,
            output=None,
            is_required=item_input.is_required,
            order=item_input.order,
            status=status.value,
            created_at=created_at,
            updated_at=created_at,
        )

    async def update(
        self,
        task_id: str,
        owner_id: str,
        title: str,
        date: str,
        items: List[UpdateTaskItemInput],
        session: Optional[AsyncSession] = None,
    ) -> Task:
        """
        Replace a task's fields and items.

        The caller must own the task. Items whose id matches an existing item
        of this task are updated in place (id, created_at and output are kept),
        the rest are inserted with new ids, and existing items that are not
        supplied are deleted. All of it happens in one transaction.

        Raises:
            NotFoundError: task does not exist
            PermissionDeniedError: owner_id does not own the task
        """
        task_id = parse_uuid(task_id, "task_id")
        owner_id = parse_uuid(owner_id, "owner_id")
        task_date = parse_iso_date(date)
        supplied_ids = [parse_uuid(item.id, "task_item_id") for item in items]

        async with unit_of_work(self.db, session, f"update task {task_id}") as active:
            task = await self._fetch(active, task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            if task.owner_id != owner_id:
                raise PermissionDeniedError("You do not have permission to update this task")

            now = utc_now()
            task.title = title
            task.date = task_date
            task.updated_at = now

            existing = {item.id: item for item in task.items}
            reconciled = []
            for index, (item_id, item_input) in enumerate(zip(supplied_ids, items)):
                item = existing.pop(item_id, None)
                if item is None:
                    reconciled.append(
                        self._new_item(item_input, now + timedelta(microseconds=index), keep_status=True)
                    )
                    continue

                item.priority = item_input.priority.value
                item.density = item_input.density.value
                item.duration_time = int(item_input.duration_time)
                item.content = item_input.content
                item.is_required = item_input.is_required
                item.order = item_input.order
                item.status = item_input.status.value
                item.updated_at = now
                reconciled.append(item)

            # Items left in `existing` become orphans and are deleted on flush
            task.items = reconciled
            await active.flush()

            logger.info(
                f"Updated task {task_id}: {len(reconciled)} items kept or added, "
                f"{len(existing)} removed"
            )
            return Task.model_validate(await self._fetch(active, task_id))

    async def update_review(
        self,
        task_id: str,
        review: Optional[str],
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Set or clear (None or empty string) a task's review. No ownership check."""
        task_id = parse_uuid(task_id, "task_id")

        async with unit_of_work(self.db, session, f"update review of task {task_id}") as active:
            result = await active.execute(
                update(TaskDB)
                .where(TaskDB.id == task_id)
                .values(review=review or None, updated_at=utc_now())
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Task {task_id} not found")

    async def update_item_output(
        self,
        item_id: str,
        output: str,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Record an item's output and mark it Completed in a single statement."""
        item_id = parse_uuid(item_id, "task_item_id")

        async with unit_of_work(self.db, session, f"update output of task item {item_id}") as active:
            result = await active.execute(
                update(TaskItemDB)
                .where(TaskItemDB.id == item_id)
                .values(
                    output=output,
                    status=TaskItemStatus.COMPLETED.value,
                    updated_at=utc_now(),
                )
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Task item {item_id} not found")

    async def delete(self, task_id: str, session: Optional[AsyncSession] = None) -> bool:
        """Delete a task. Its items are removed by the ON DELETE CASCADE foreign key."""
        task_id = parse_uuid(task_id, "task_id")

        async with unit_of_work(self.db, session, f"delete task {task_id}") as active:
            result = await active.execute(delete(TaskDB).where(TaskDB.id == task_id))
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Deleted task {task_id}")
        return deleted


# Singleton
_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
