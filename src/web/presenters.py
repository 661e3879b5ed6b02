"""
Response presenters.

Pure mappings from domain models to the JSON shapes served by the API.
Wire names are camelCase; the per-density aggregates keep their
capitalised names (HighTaskCount, MediumTaskRate, ...).
"""

from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.account import Account
from ..models.task import Task, TaskItem, Priority, Density, DurationTime, TaskItemStatus, calculate_statistics
from ..utils.datetime_utils import format_date, format_timestamp


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskItemResponse(_CamelModel):
    id: str
    task_id: str
    priority: Priority
    density: Density
    duration_time: DurationTime
    content: str
    output: Optional[str] = None
    is_required: bool
    order: int
    status: TaskItemStatus


class TaskOwnerResponse(_CamelModel):
    id: str
    first_name: str
    last_name: str
    thumbnail: Optional[str] = None


class TaskResponse(_CamelModel):
    id: str
    owner_id: str
    owner: TaskOwnerResponse
    title: str
    date: str
    review: Optional[str] = None
    task_items: List[TaskItemResponse]

    completion_rate: float
    planned_task_count: int
    planned_task_duration_minutes: int
    completed_task_count: int
    completed_task_duration_minutes: int

    high_task_count: int = Field(alias="HighTaskCount")
    high_task_duration: int = Field(alias="HighTaskDuration")
    high_task_rate: float = Field(alias="HighTaskRate")
    medium_task_count: int = Field(alias="MediumTaskCount")
    medium_task_duration: int = Field(alias="MediumTaskDuration")
    medium_task_rate: float = Field(alias="MediumTaskRate")
    low_task_count: int = Field(alias="LowTaskCount")
    low_task_duration: int = Field(alias="LowTaskDuration")
    low_task_rate: float = Field(alias="LowTaskRate")

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AccountResponse(_CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    thumbnail: Optional[str] = None
    last_login_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DeleteTaskResponse(BaseModel):
    success: bool = True


def to_account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        full_name=f"{account.first_name} {account.last_name}",
        thumbnail=account.thumbnail,
        last_login_at=format_timestamp(account.last_login_at),
        created_at=format_timestamp(account.created_at),
        updated_at=format_timestamp(account.updated_at),
    )


def _to_item_response(item: TaskItem) -> TaskItemResponse:
    return TaskItemResponse(
        id=item.id,
        task_id=item.task_id,
        priority=item.priority,
        density=item.density,
        duration_time=item.duration_time,
        content=item.content,
        output=item.output,
        is_required=item.is_required,
        order=item.order,
        status=item.status,
    )


def to_task_response(task: Task, owner: Account) -> TaskResponse:
    """
    Render a task with its owner summary and derived statistics.

    Completion rate is completed items over planned items; each density
    rate is that density's minutes over planned minutes. Both are
    percentages and are 0 when their denominator is 0.
    """
    stats = calculate_statistics(task)

    return TaskResponse(
        id=task.id,
        owner_id=task.owner_id,
        owner=TaskOwnerResponse(
            id=owner.id,
            first_name=owner.first_name,
            last_name=owner.last_name,
            thumbnail=owner.thumbnail,
        ),
        title=task.title,
        date=format_date(task.date),
        review=task.review,
        task_items=[_to_item_response(item) for item in task.items],
        completion_rate=stats.completion_rate,
        planned_task_count=stats.planned_count,
        planned_task_duration_minutes=stats.planned_duration_minutes,
        completed_task_count=stats.completed_count,
        completed_task_duration_minutes=stats.completed_duration_minutes,
        high_task_count=stats.high.count,
        high_task_duration=stats.high.duration_minutes,
        high_task_rate=stats.high.rate,
        medium_task_count=stats.medium.count,
        medium_task_duration=stats.medium.duration_minutes,
        medium_task_rate=stats.medium.rate,
        low_task_count=stats.low.count,
        low_task_duration=stats.low.duration_minutes,
        low_task_rate=stats.low.rate,
        created_at=format_timestamp(task.created_at),
        updated_at=format_timestamp(task.updated_at),
    )


def to_task_response_list(tasks: List[Task], owner: Optional[Account]) -> List[TaskResponse]:
    """Render a list of tasks sharing one owner. An empty list needs no owner."""
    if not tasks:
        return []
    return [to_task_response(task, owner) for task in tasks]
