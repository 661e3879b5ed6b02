"""
SQLAlchemy models for the relational store.

Schema includes:
- Accounts linked to an OAuth provider identity
- Tasks (aggregate root, one per owner and date)
- Task items owned by a task, removed by ON DELETE CASCADE
"""

import uuid
from datetime import datetime, date, timezone
from typing import Optional, List

from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==================== ACCOUNTS ====================

class AccountDB(Base):
    """User accounts, created on first OAuth login."""
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # OAuth linkage
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_account_id: Mapped[str] = mapped_column(String(255), nullable=False)

    thumbnail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    tasks: Mapped[List["TaskDB"]] = relationship("TaskDB", back_populates="owner")

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        UniqueConstraint("provider", "provider_account_id", name="uq_accounts_provider"),
    )


# ==================== TASKS ====================

class TaskDB(Base):
    """Daily task (aggregate root)."""
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("accounts.id"), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # Set only via review update

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    owner: Mapped["AccountDB"] = relationship("AccountDB", back_populates="tasks")
    items: Mapped[List["TaskItemDB"]] = relationship(
        "TaskItemDB",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,  # Rows are removed by the FK cascade
        order_by=lambda: [TaskItemDB.order, TaskItemDB.created_at, TaskItemDB.id],
    )

    __table_args__ = (
        Index("idx_tasks_owner", "owner_id"),
        Index("idx_tasks_title", "title"),
        Index("idx_tasks_date", "date"),
    )


# ==================== TASK ITEMS ====================

class TaskItemDB(Base):
    """Items belonging to a task."""
    __tablename__ = "task_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    task_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )

    priority: Mapped[str] = mapped_column(String(10), nullable=False)  # High, Medium, Low
    density: Mapped[str] = mapped_column(String(10), nullable=False)   # High, Medium, Low
    duration_time: Mapped[int] = mapped_column(Integer, nullable=False)  # 15, 30, 45, 60
    content: Mapped[str] = mapped_column(Text, nullable=False)
    output: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="NotStarted")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    task: Mapped["TaskDB"] = relationship("TaskDB", back_populates="items")

    __table_args__ = (
        Index("idx_task_items_task", "task_id"),
        CheckConstraint('"order" >= 0', name="ck_task_items_order_non_negative"),
    )
