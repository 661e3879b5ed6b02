from .task import (
    Task,
    TaskItem,
    Priority,
    Density,
    DurationTime,
    TaskItemStatus,
    TaskSort,
    ListTasksCondition,
    CreateTaskItemInput,
    UpdateTaskItemInput,
    TaskStatistics,
    calculate_statistics,
)
from .account import Account

__all__ = [
    "Task",
    "TaskItem",
    "Priority",
    "Density",
    "DurationTime",
    "TaskItemStatus",
    "TaskSort",
    "ListTasksCondition",
    "CreateTaskItemInput",
    "UpdateTaskItemInput",
    "TaskStatistics",
    "calculate_statistics",
    "Account",
]
