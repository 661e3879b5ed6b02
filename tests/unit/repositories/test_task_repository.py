"""
Unit tests for TaskRepository.

Runs against a temporary SQLite database (see tests/conftest.py), except for
the driver-failure cases, which use a mocked session.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from src.database.models import TaskItemDB
from src.database.repositories.tasks import TaskRepository
from src.exceptions import (
    ErrorKind,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    StorageConstraintError,
    ValidationError,
)
from src.models.task import (
    CreateTaskItemInput,
    UpdateTaskItemInput,
    ListTasksCondition,
    Priority,
    Density,
    DurationTime,
    TaskItemStatus,
)


def _item(content, order=0, duration=DurationTime.MIN_30, density=Density.MEDIUM):
    return CreateTaskItemInput(
        priority=Priority.MEDIUM,
        density=density,
        duration_time=duration,
        content=content,
        order=order,
    )


def _as_update(item, **changes):
    """Turn a loaded TaskItem into an update input, optionally changing fields."""
    data = {
        "id": item.id,
        "priority": item.priority,
        "density": item.density,
        "duration_time": item.duration_time,
        "content": item.content,
        "is_required": item.is_required,
        "order": item.order,
        "status": item.status,
    }
    data.update(changes)
    return UpdateTaskItemInput(**data)


async def _count_items(database) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(TaskItemDB))
        return result.scalar_one()


# ============================================================
# CREATE
# ============================================================

class TestCreate:
    """Tests for creating tasks."""

    @pytest.mark.asyncio
    async def test_create_persists_all_items(self, task_repo, owner, sample_items):
        """Test that every supplied item is stored with the task."""
        task = await task_repo.create(owner.id, "Monday plan", "2024-03-15", sample_items)

        assert task.owner_id == owner.id
        assert task.title == "Monday plan"
        assert len(task.items) == len(sample_items)
        assert all(item.task_id == task.id for item in task.items)
        assert [item.content for item in task.items] == [
            "Write design doc",
            "Review pull requests",
            "Answer email",
        ]

    @pytest.mark.asyncio
    async def test_create_forces_not_started_without_output(self, task_repo, owner, sample_items):
        """Test that client-supplied statuses are ignored on create."""
        task = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        assert all(item.status == TaskItemStatus.NOT_STARTED for item in task.items)
        assert all(item.output is None for item in task.items)
        assert task.review is None

    @pytest.mark.asyncio
    async def test_date_round_trip(self, task_repo, owner, sample_items):
        """Test that the calendar date reads back unchanged."""
        created = await task_repo.create(owner.id, "Plan", "2024-02-29", sample_items)

        loaded = await task_repo.get_by_id(created.id)

        assert loaded.date == date(2024, 2, 29)

    @pytest.mark.asyncio
    async def test_items_with_equal_order_keep_insertion_order(self, task_repo, owner):
        """Test that created_at breaks ties between items with the same order."""
        items = [_item("first"), _item("second"), _item("third")]

        task = await task_repo.create(owner.id, "Plan", "2024-03-15", items)

        assert [item.content for item in task.items] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_items_sorted_by_order(self, task_repo, owner):
        items = [_item("later", order=5), _item("sooner", order=1)]

        task = await task_repo.create(owner.id, "Plan", "2024-03-15", items)

        assert [item.content for item in task.items] == ["sooner", "later"]

    @pytest.mark.asyncio
    async def test_create_rejects_bad_date(self, task_repo, owner, sample_items):
        with pytest.raises(ValidationError):
            await task_repo.create(owner.id, "Plan", "2024-13-40", sample_items)

    @pytest.mark.asyncio
    async def test_create_rejects_malformed_owner_id(self, task_repo, sample_items):
        with pytest.raises(ValidationError):
            await task_repo.create("not-a-uuid", "Plan", "2024-03-15", sample_items)

    @pytest.mark.asyncio
    async def test_create_for_unknown_owner_violates_constraint(self, task_repo, sample_items):
        """Test that the owner foreign key is enforced and nothing is written."""
        with pytest.raises(StorageConstraintError) as exc_info:
            await task_repo.create(str(uuid.uuid4()), "Plan", "2024-03-15", sample_items)

        assert exc_info.value.kind == ErrorKind.STORAGE
        assert await _count_items(task_repo.db) == 0


# ============================================================
# GET
# ============================================================

class TestGet:
    """Tests for loading a single task."""

    @pytest.mark.asyncio
    async def test_get_by_id_missing_returns_none(self, task_repo):
        assert await task_repo.get_by_id(str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_get_by_id_malformed(self, task_repo):
        with pytest.raises(ValidationError):
            await task_repo.get_by_id("abc")

    @pytest.mark.asyncio
    async def test_get_by_id_accepts_uppercase_uuid(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        loaded = await task_repo.get_by_id(created.id.upper())

        assert loaded.id == created.id

    @pytest.mark.asyncio
    async def test_get_by_task_item_id_returns_whole_task(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        loaded = await task_repo.get_by_task_item_id(created.items[1].id)

        assert loaded.id == created.id
        assert len(loaded.items) == 3

    @pytest.mark.asyncio
    async def test_get_by_task_item_id_missing(self, task_repo):
        assert await task_repo.get_by_task_item_id(str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_get_by_task_item_id_malformed(self, task_repo):
        with pytest.raises(ValidationError):
            await task_repo.get_by_task_item_id("item-1")


# ============================================================
# UPDATE
# ============================================================

class TestUpdate:
    """Tests for replacing a task's fields and items."""

    @pytest.mark.asyncio
    async def test_reconciles_items_by_id(self, task_repo, owner):
        """Test [A, B, C] -> [A', D]: A updated in place, D inserted, B and C deleted."""
        created = await task_repo.create(
            owner.id, "Plan", "2024-03-15", [_item("A", 0), _item("B", 1), _item("C", 2)]
        )
        a = created.items[0]
        d_id = str(uuid.uuid4())

        updated = await task_repo.update(
            created.id,
            owner.id,
            "Plan v2",
            "2024-03-16",
            [
                _as_update(a, content="A prime", status=TaskItemStatus.IN_PROGRESS),
                UpdateTaskItemInput(
                    id=d_id,
                    priority=Priority.HIGH,
                    density=Density.HIGH,
                    duration_time=DurationTime.MIN_45,
                    content="D",
                    order=1,
                ),
            ],
        )

        assert updated.title == "Plan v2"
        assert updated.date == date(2024, 3, 16)
        assert [item.content for item in updated.items] == ["A prime", "D"]

        kept, inserted = updated.items
        assert kept.id == a.id
        assert kept.created_at == a.created_at
        assert kept.status == TaskItemStatus.IN_PROGRESS
        assert inserted.id not in {item.id for item in created.items}
        assert await _count_items(task_repo.db) == 2

    @pytest.mark.asyncio
    async def test_update_keeps_output_of_matched_items(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)
        target = created.items[0]
        await task_repo.update_item_output(target.id, "Doc drafted")

        updated = await task_repo.update(
            created.id,
            owner.id,
            "Plan",
            "2024-03-15",
            [_as_update(item) for item in created.items],
        )

        assert updated.items[0].output == "Doc drafted"

    @pytest.mark.asyncio
    async def test_item_id_from_another_task_is_inserted_as_new(self, task_repo, owner, sample_items):
        first = await task_repo.create(owner.id, "First", "2024-03-15", sample_items)
        second = await task_repo.create(owner.id, "Second", "2024-03-16", [_item("only")])
        foreign = first.items[0]

        updated = await task_repo.update(
            second.id, owner.id, "Second", "2024-03-16", [_as_update(foreign)]
        )

        assert len(updated.items) == 1
        assert updated.items[0].id != foreign.id
        reloaded_first = await task_repo.get_by_id(first.id)
        assert len(reloaded_first.items) == 3

    @pytest.mark.asyncio
    async def test_update_by_non_owner_is_denied_without_writes(
        self, task_repo, owner, other_account, sample_items
    ):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        with pytest.raises(PermissionDeniedError):
            await task_repo.update(
                created.id, other_account.id, "Hijacked", "2024-03-15", [_as_update(created.items[0])]
            )

        reloaded = await task_repo.get_by_id(created.id)
        assert reloaded.title == "Plan"
        assert len(reloaded.items) == 3

    @pytest.mark.asyncio
    async def test_update_missing_task(self, task_repo, owner):
        with pytest.raises(NotFoundError):
            await task_repo.update(
                str(uuid.uuid4()),
                owner.id,
                "Plan",
                "2024-03-15",
                [
                    UpdateTaskItemInput(
                        id=str(uuid.uuid4()),
                        priority=Priority.LOW,
                        density=Density.LOW,
                        duration_time=DurationTime.MIN_15,
                        content="x",
                    )
                ],
            )

    @pytest.mark.asyncio
    async def test_update_rejects_malformed_item_id(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        with pytest.raises(ValidationError):
            await task_repo.update(
                created.id, owner.id, "Plan", "2024-03-15", [_as_update(created.items[0], id="nope")]
            )

    @pytest.mark.asyncio
    async def test_failed_update_leaves_task_untouched(self, task_repo, owner, sample_items):
        """Test a constraint failure mid-update rolls back the field and item changes."""
        created = await task_repo.create(owner.id, "Plan", "2024-01-10", sample_items)

        with pytest.raises(StorageConstraintError):
            await task_repo.update(
                created.id,
                owner.id,
                "Plan v2",
                "2024-02-20",
                [
                    _as_update(created.items[0], content="Changed"),
                    UpdateTaskItemInput(
                        id=str(uuid.uuid4()),
                        priority=Priority.LOW,
                        density=Density.LOW,
                        duration_time=DurationTime.MIN_15,
                        content="Negative order",
                        order=-1,
                    ),
                ],
            )

        reloaded = await task_repo.get_by_id(created.id)
        assert reloaded.title == "Plan"
        assert reloaded.date == date(2024, 1, 10)
        assert [item.id for item in reloaded.items] == [item.id for item in created.items]
        assert reloaded.items[0].content == created.items[0].content
        assert await _count_items(task_repo.db) == 3


# ============================================================
# REVIEW / OUTPUT
# ============================================================

class TestReviewAndOutput:
    """Tests for review and item output updates."""

    @pytest.mark.asyncio
    async def test_set_and_clear_review(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)

        await task_repo.update_review(created.id, "Went well")
        assert (await task_repo.get_by_id(created.id)).review == "Went well"

        await task_repo.update_review(created.id, "")
        assert (await task_repo.get_by_id(created.id)).review is None

    @pytest.mark.asyncio
    async def test_review_missing_task(self, task_repo):
        with pytest.raises(NotFoundError):
            await task_repo.update_review(str(uuid.uuid4()), "text")

    @pytest.mark.asyncio
    async def test_output_completes_item(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)
        target = created.items[1]

        await task_repo.update_item_output(target.id, "Reviewed 3 PRs")

        reloaded = await task_repo.get_by_id(created.id)
        item = next(i for i in reloaded.items if i.id == target.id)
        assert item.output == "Reviewed 3 PRs"
        assert item.status == TaskItemStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_output_update_is_idempotent(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)
        target = created.items[0]

        await task_repo.update_item_output(target.id, "Done")
        first = await task_repo.get_by_id(created.id)
        await task_repo.update_item_output(target.id, "Done")
        second = await task_repo.get_by_id(created.id)

        assert [(i.id, i.output, i.status) for i in first.items] == [
            (i.id, i.output, i.status) for i in second.items
        ]

    @pytest.mark.asyncio
    async def test_output_missing_item(self, task_repo):
        with pytest.raises(NotFoundError):
            await task_repo.update_item_output(str(uuid.uuid4()), "text")


# ============================================================
# DELETE
# ============================================================

class TestDelete:
    """Tests for deleting tasks."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_items(self, task_repo, owner, sample_items):
        created = await task_repo.create(owner.id, "Plan", "2024-03-15", sample_items)
        assert await _count_items(task_repo.db) == 3

        assert await task_repo.delete(created.id) is True

        assert await task_repo.get_by_id(created.id) is None
        assert await _count_items(task_repo.db) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, task_repo):
        assert await task_repo.delete(str(uuid.uuid4())) is False


# ============================================================
# LIST
# ============================================================

class TestList:
    """Tests for filtered and sorted task listing."""

    @pytest.mark.asyncio
    async def test_empty_result_is_a_list(self, task_repo, owner):
        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id))

        assert tasks == []

    @pytest.mark.asyncio
    async def test_filters_by_owner(self, task_repo, owner, other_account, sample_items):
        mine = await task_repo.create(owner.id, "Mine", "2024-03-15", sample_items)
        await task_repo.create(other_account.id, "Theirs", "2024-03-15", sample_items)

        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id))

        assert [t.id for t in tasks] == [mine.id]

    @pytest.mark.asyncio
    async def test_filters_by_year_month(self, task_repo, owner, sample_items):
        await task_repo.create(owner.id, "February", "2024-02-29", sample_items)
        march_first = await task_repo.create(owner.id, "March 1", "2024-03-01", sample_items)
        march_last = await task_repo.create(owner.id, "March 31", "2024-03-31", sample_items)
        await task_repo.create(owner.id, "April", "2024-04-01", sample_items)

        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, year_month="2024-03"))

        assert {t.id for t in tasks} == {march_first.id, march_last.id}

    @pytest.mark.asyncio
    async def test_malformed_year_month(self, task_repo, owner):
        with pytest.raises(ValidationError):
            await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, year_month="2024/03"))

    @pytest.mark.asyncio
    async def test_keyword_matches_title_or_item_content(self, task_repo, owner):
        by_title = await task_repo.create(owner.id, "Deploy BACKEND", "2024-03-15", [_item("x")])
        by_item = await task_repo.create(owner.id, "Other", "2024-03-16", [_item("fix backend tests")])
        await task_repo.create(owner.id, "Unrelated", "2024-03-17", [_item("y")])

        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, keyword="backend"))

        assert {t.id for t in tasks} == {by_title.id, by_item.id}

    @pytest.mark.asyncio
    async def test_keyword_wildcards_are_literal(self, task_repo, owner):
        literal = await task_repo.create(owner.id, "100% done", "2024-03-15", [_item("x")])
        await task_repo.create(owner.id, "100 items", "2024-03-16", [_item("y")])

        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, keyword="100%"))

        assert [t.id for t in tasks] == [literal.id]

    @pytest.mark.asyncio
    async def test_default_sort_is_newest_first(self, task_repo, owner, sample_items):
        first = await task_repo.create(owner.id, "First", "2024-03-15", sample_items)
        second = await task_repo.create(owner.id, "Second", "2024-03-14", sample_items)

        tasks = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id))
        unknown = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, sort="sideways"))

        assert [t.id for t in tasks] == [second.id, first.id]
        assert [t.id for t in unknown] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_sort_by_date(self, task_repo, owner, sample_items):
        later = await task_repo.create(owner.id, "Later", "2024-03-20", sample_items)
        earlier = await task_repo.create(owner.id, "Earlier", "2024-03-10", sample_items)

        asc = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, sort="date-asc"))
        desc = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, sort="date-desc"))

        assert [t.id for t in asc] == [earlier.id, later.id]
        assert [t.id for t in desc] == [later.id, earlier.id]

    @pytest.mark.asyncio
    async def test_sort_by_completion(self, task_repo, owner):
        done = await task_repo.create(owner.id, "Done", "2024-03-15", [_item("a")])
        idle = await task_repo.create(owner.id, "Idle", "2024-03-16", [_item("b")])
        await task_repo.update_item_output(done.items[0].id, "finished")

        highest = await task_repo.list_tasks(
            ListTasksCondition(owner_id=owner.id, sort="highest-completion")
        )
        lowest = await task_repo.list_tasks(
            ListTasksCondition(owner_id=owner.id, sort="lowest-completion")
        )

        assert [t.id for t in highest] == [done.id, idle.id]
        assert [t.id for t in lowest] == [idle.id, done.id]

    @pytest.mark.asyncio
    async def test_sort_by_completed_quantity(self, task_repo, owner):
        short = await task_repo.create(
            owner.id, "Short", "2024-03-15", [_item("a", duration=DurationTime.MIN_15)]
        )
        long = await task_repo.create(
            owner.id, "Long", "2024-03-16", [_item("b", duration=DurationTime.MIN_60)]
        )
        await task_repo.update_item_output(short.items[0].id, "ok")
        await task_repo.update_item_output(long.items[0].id, "ok")

        most = await task_repo.list_tasks(ListTasksCondition(owner_id=owner.id, sort="most-quantity"))

        assert [t.id for t in most] == [long.id, short.id]


# ============================================================
# DRIVER FAILURES
# ============================================================

@pytest.fixture
def failing_repo():
    """TaskRepository whose session fails every statement."""
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("connection lost")))

    @asynccontextmanager
    async def transaction(ambient=None):
        yield session

    db = Mock()
    db.transaction = transaction
    return TaskRepository(db=db)


class TestStorageFailures:

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_error(self, failing_repo):
        with pytest.raises(StorageError) as exc_info:
            await failing_repo.get_by_id(str(uuid.uuid4()))

        assert exc_info.value.kind == ErrorKind.STORAGE

    @pytest.mark.asyncio
    async def test_list_driver_error(self, failing_repo):
        with pytest.raises(StorageError):
            await failing_repo.list_tasks(ListTasksCondition())
