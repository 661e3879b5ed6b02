"""
API routes for tasks, task items and accounts.

Domain errors raised here or below are mapped to HTTP status codes by the
exception handlers registered in src.main.
"""

import asyncio
import logging
from typing import Optional, List, Awaitable, TypeVar

from fastapi import APIRouter, Depends, Header, Query

from config import settings
from ..exceptions import NotFoundError, PermissionDeniedError
from ..models.api_validation import (
    CreateTaskRequest,
    UpdateTaskRequest,
    DeleteTaskRequest,
    UpdateTaskReviewRequest,
    UpdateTaskItemOutputRequest,
    CreateOrGetAccountRequest,
)
from ..models.task import ListTasksCondition
from ..services.task_service import TaskService, get_task_service
from ..services.account_service import AccountService, get_account_service, split_full_name
from ..utils.validation import parse_uuid
from .presenters import (
    TaskResponse,
    AccountResponse,
    DeleteTaskResponse,
    to_task_response,
    to_task_response_list,
    to_account_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

T = TypeVar("T")


async def _with_timeout(call: Awaitable[T]) -> T:
    """Bound a service call; on timeout the in-flight transaction is cancelled and rolled back."""
    return await asyncio.wait_for(call, timeout=settings.request_timeout_seconds)


def _check_identity(account_id: Optional[str], owner_id: str):
    """A verified caller identity, when supplied, must match the claimed owner."""
    if account_id is not None and parse_uuid(account_id, "X-Account-Id") != parse_uuid(owner_id, "ownerId"):
        logger.warning(f"X-Account-Id {account_id} does not match ownerId {owner_id}")
        raise PermissionDeniedError("Authenticated account does not match ownerId")


# ============================================================================
# Tasks
# ============================================================================

@router.get("/tasks", response_model=List[TaskResponse])
async def list_tasks(
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    year_month: Optional[str] = Query(None, alias="year-month"),
    q: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    service: TaskService = Depends(get_task_service),
):
    """List tasks filtered by owner, month and keyword."""
    condition = ListTasksCondition(owner_id=owner_id, year_month=year_month, keyword=q, sort=sort)
    tasks, owner = await _with_timeout(service.list_tasks(condition))
    return to_task_response_list(tasks, owner)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)):
    task, owner = await _with_timeout(service.get_by_id(task_id))
    if task is None:
        raise NotFoundError("Task not found")
    return to_task_response(task, owner)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    body: CreateTaskRequest,
    x_account_id: Optional[str] = Header(None),
    service: TaskService = Depends(get_task_service),
):
    """Create a task; its items always start NotStarted."""
    _check_identity(x_account_id, body.owner_id)

    task, owner = await _with_timeout(
        service.create(
            owner_id=body.owner_id,
            title=body.title,
            date=body.date,
            items=[item.to_input() for item in body.task_items],
        )
    )
    return to_task_response(task, owner)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: UpdateTaskRequest,
    x_account_id: Optional[str] = Header(None),
    service: TaskService = Depends(get_task_service),
):
    """Replace a task's title, date and items."""
    _check_identity(x_account_id, body.owner_id)

    task, owner = await _with_timeout(
        service.update(
            task_id=task_id,
            owner_id=body.owner_id,
            title=body.title,
            date=body.date,
            items=[item.to_input() for item in body.task_items],
        )
    )
    return to_task_response(task, owner)


@router.delete("/tasks/{task_id}", response_model=DeleteTaskResponse)
async def delete_task(
    task_id: str,
    body: DeleteTaskRequest,
    x_account_id: Optional[str] = Header(None),
    service: TaskService = Depends(get_task_service),
):
    _check_identity(x_account_id, body.owner_id)

    await _with_timeout(service.delete(task_id, body.owner_id))
    return DeleteTaskResponse(success=True)


@router.put("/tasks/{task_id}/review", response_model=TaskResponse)
async def update_task_review(
    task_id: str,
    body: UpdateTaskReviewRequest,
    x_account_id: Optional[str] = Header(None),
    service: TaskService = Depends(get_task_service),
):
    """Set or clear the retrospective note of a task."""
    _check_identity(x_account_id, body.owner_id)

    task, owner = await _with_timeout(service.update_review(task_id, body.owner_id, body.review))
    return to_task_response(task, owner)


@router.put("/taskitems/{task_item_id}", response_model=TaskResponse)
async def update_task_item_output(
    task_item_id: str,
    body: UpdateTaskItemOutputRequest,
    x_account_id: Optional[str] = Header(None),
    service: TaskService = Depends(get_task_service),
):
    """Record an item's output; the item becomes Completed."""
    _check_identity(x_account_id, body.owner_id)

    task, owner = await _with_timeout(
        service.update_item_output(task_item_id, body.owner_id, body.output)
    )
    return to_task_response(task, owner)


# ============================================================================
# Accounts
# ============================================================================

@router.post("/accounts/auth", response_model=AccountResponse)
async def create_or_get_account(
    body: CreateOrGetAccountRequest,
    service: AccountService = Depends(get_account_service),
):
    """Return the account for an OAuth login, creating it on first login."""
    first_name, last_name = split_full_name(body.name)

    account = await _with_timeout(
        service.create_or_get_account(
            email=body.email,
            first_name=first_name,
            last_name=last_name,
            provider=body.provider,
            provider_account_id=body.provider_account_id,
            thumbnail=body.thumbnail,
        )
    )
    return to_account_response(account)


@router.get("/accounts/by-email", response_model=AccountResponse)
async def get_account_by_email(
    email: str = Query(..., min_length=1),
    service: AccountService = Depends(get_account_service),
):
    account = await _with_timeout(service.get_by_email(email))
    if account is None:
        raise NotFoundError("Account not found")
    return to_account_response(account)


@router.get("/accounts/me", response_model=AccountResponse)
async def get_current_account(
    x_account_id: str = Header(...),
    service: AccountService = Depends(get_account_service),
):
    account = await _with_timeout(service.get_current_account(x_account_id))
    return to_account_response(account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str, service: AccountService = Depends(get_account_service)):
    account = await _with_timeout(service.get_by_id(account_id))
    if account is None:
        raise NotFoundError("Account not found")
    return to_account_response(account)
