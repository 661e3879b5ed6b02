"""
Pydantic models for API endpoint input validation.

Request bodies use camelCase on the wire. Failures are reported by the
HTTP layer as 400 with one entry per offending field.
"""

import uuid
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, EmailStr
from pydantic.alias_generators import to_camel

from ..exceptions import ValidationError as DomainValidationError
from ..utils.datetime_utils import parse_iso_date
from .task import (
    Priority,
    Density,
    DurationTime,
    TaskItemStatus,
    CreateTaskItemInput,
    UpdateTaskItemInput,
)


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_date(v: str) -> str:
    try:
        parse_iso_date(v)
    except DomainValidationError:
        raise ValueError("date must be in YYYY-MM-DD format")
    return v


# ============================================
# TASK ITEMS
# ============================================

class CreateTaskItemRequest(_RequestModel):
    """A task item in a create request."""
    priority: Priority
    density: Density
    duration_time: DurationTime
    content: str = Field(..., min_length=1)
    is_required: bool = False
    order: int = Field(0, ge=0)
    status: TaskItemStatus = TaskItemStatus.NOT_STARTED

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("content cannot be empty")
        return v

    def to_input(self) -> CreateTaskItemInput:
        return CreateTaskItemInput(**self.model_dump())


class UpdateTaskItemRequest(CreateTaskItemRequest):
    """A task item in an update request. Unknown ids are inserted as new items."""
    id: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        try:
            uuid.UUID(v)
        except ValueError:
            raise ValueError("id must be a UUID")
        return v

    def to_input(self) -> UpdateTaskItemInput:
        return UpdateTaskItemInput(**self.model_dump())


# ============================================
# TASKS
# ============================================

class CreateTaskRequest(_RequestModel):
    """Input validation for creating a task."""
    owner_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    task_items: List[CreateTaskItemRequest] = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("title cannot be empty after stripping whitespace")
        return stripped

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)


class UpdateTaskRequest(CreateTaskRequest):
    """Input validation for replacing a task and its items."""
    task_items: List[UpdateTaskItemRequest] = Field(..., min_length=1)


class DeleteTaskRequest(_RequestModel):
    owner_id: str = Field(..., min_length=1)


class UpdateTaskReviewRequest(_RequestModel):
    """Set the review; null or empty string clears it."""
    owner_id: str = Field(..., min_length=1)
    review: Optional[str] = None


class UpdateTaskItemOutputRequest(_RequestModel):
    """Record the output of a task item, completing it."""
    owner_id: str = Field(..., min_length=1)
    output: str = Field(..., min_length=1)


# ============================================
# ACCOUNTS
# ============================================

class CreateOrGetAccountRequest(_RequestModel):
    """OAuth login payload: an account is created on first sight of the email."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    provider: str = Field(..., min_length=1, max_length=50)
    provider_account_id: str = Field(..., min_length=1, max_length=255)
    thumbnail: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("name cannot be empty after stripping whitespace")
        return stripped
