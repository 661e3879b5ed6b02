"""
Pytest configuration and shared fixtures.

Store and service tests run against a throwaway SQLite file so foreign key
cascades and constraints behave like the real database.
"""

import pytest
import pytest_asyncio

from src.database.connection import Database
from src.database.repositories.accounts import AccountRepository
from src.database.repositories.tasks import TaskRepository
from src.models.task import (
    CreateTaskItemInput,
    Priority,
    Density,
    DurationTime,
    TaskItemStatus,
)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Initialized database backed by a temporary SQLite file."""
    db = Database(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}",
        environment="test",
    )
    assert await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def task_repo(database):
    return TaskRepository(db=database)


@pytest.fixture
def account_repo(database):
    return AccountRepository(db=database)


@pytest_asyncio.fixture
async def owner(account_repo):
    """An account that owns the tasks under test."""
    return await account_repo.create(
        email="owner@example.com",
        first_name="Taro",
        last_name="Yamada",
        provider="google",
        provider_account_id="google-owner",
        thumbnail="https://example.com/owner.png",
    )


@pytest_asyncio.fixture
async def other_account(account_repo):
    """An account that owns nothing."""
    return await account_repo.create(
        email="other@example.com",
        first_name="Hanako",
        last_name="Suzuki",
        provider="google",
        provider_account_id="google-other",
    )


@pytest.fixture
def sample_items():
    """Three items with distinct densities; the client asks for statuses that create ignores."""
    return [
        CreateTaskItemInput(
            priority=Priority.HIGH,
            density=Density.HIGH,
            duration_time=DurationTime.MIN_60,
            content="Write design doc",
            is_required=True,
            order=0,
            status=TaskItemStatus.COMPLETED,
        ),
        CreateTaskItemInput(
            priority=Priority.MEDIUM,
            density=Density.MEDIUM,
            duration_time=DurationTime.MIN_30,
            content="Review pull requests",
            order=1,
            status=TaskItemStatus.IN_PROGRESS,
        ),
        CreateTaskItemInput(
            priority=Priority.LOW,
            density=Density.LOW,
            duration_time=DurationTime.MIN_15,
            content="Answer email",
            order=2,
        ),
    ]
