"""Task aggregate data model: a dated task and its ordered task items."""

import datetime as dt
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


class Priority(str, Enum):
    """Task item priority levels."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Density(str, Enum):
    """Workload intensity of a task item, independent of priority."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskItemStatus(str, Enum):
    """Task item progress states."""
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class DurationTime(int, Enum):
    """Allowed task item durations in minutes."""
    MIN_15 = 15
    MIN_30 = 30
    MIN_45 = 45
    MIN_60 = 60


class TaskSort(str, Enum):
    """Orderings accepted by the task list query."""
    NEWEST = "newest"
    OLDEST = "oldest"
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"
    HIGHEST_COMPLETION = "highest-completion"
    LOWEST_COMPLETION = "lowest-completion"
    MOST_QUANTITY = "most-quantity"
    LEAST_QUANTITY = "least-quantity"


class TaskItem(BaseModel):
    """A single planned unit of work inside a task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    priority: Priority
    density: Density
    duration_time: DurationTime
    content: str
    output: Optional[str] = None
    is_required: bool = False
    order: int = 0
    status: TaskItemStatus = TaskItemStatus.NOT_STARTED
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class Task(BaseModel):
    """Aggregate root. Items are always loaded and saved together with the task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    title: str
    date: dt.date
    review: Optional[str] = None
    items: List[TaskItem] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.items)


class ListTasksCondition(BaseModel):
    """Filters for listing tasks. All supplied filters must match."""
    owner_id: Optional[str] = None
    year_month: Optional[str] = None  # YYYY-MM
    keyword: Optional[str] = None
    sort: Optional[str] = None


class CreateTaskItemInput(BaseModel):
    """Item fields supplied when creating a task."""
    priority: Priority
    density: Density
    duration_time: DurationTime
    content: str
    is_required: bool = False
    order: int = 0
    status: TaskItemStatus = TaskItemStatus.NOT_STARTED


class UpdateTaskItemInput(CreateTaskItemInput):
    """Item fields supplied when replacing a task's items; id matches an existing item or is new."""
    id: str


class DensityBucket(BaseModel):
    count: int = 0
    duration_minutes: int = 0
    rate: float = 0.0


class TaskStatistics(BaseModel):
    """Aggregates derived from a task's items."""
    planned_count: int = 0
    planned_duration_minutes: int = 0
    completed_count: int = 0
    completed_duration_minutes: int = 0
    completion_rate: float = 0.0
    high: DensityBucket = Field(default_factory=DensityBucket)
    medium: DensityBucket = Field(default_factory=DensityBucket)
    low: DensityBucket = Field(default_factory=DensityBucket)


def calculate_statistics(task: Task) -> TaskStatistics:
    """
    Compute planned/completed totals and per-density shares for a task.

    Rates are percentages; they are 0 when there is nothing planned.
    """
    stats = TaskStatistics(planned_count=len(task.items))
    buckets = {
        Density.HIGH: stats.high,
        Density.MEDIUM: stats.medium,
        Density.LOW: stats.low,
    }

    for item in task.items:
        minutes = int(item.duration_time)
        stats.planned_duration_minutes += minutes

        if item.status == TaskItemStatus.COMPLETED:
            stats.completed_count += 1
            stats.completed_duration_minutes += minutes

        bucket = buckets[item.density]
        bucket.count += 1
        bucket.duration_minutes += minutes

    if stats.planned_count > 0:
        stats.completion_rate = stats.completed_count / stats.planned_count * 100

    if stats.planned_duration_minutes > 0:
        for bucket in buckets.values():
            bucket.rate = bucket.duration_minutes / stats.planned_duration_minutes * 100

    return stats
