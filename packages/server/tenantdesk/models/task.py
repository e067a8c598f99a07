"""Task and task transfer models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    parent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tasks.id", index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    type: str = Field(nullable=False, default="TASK")
    status: str = Field(nullable=False, default="BACKLOG")
    priority: str = Field(nullable=False, default="P4")  # P0 (highest) .. P4
    assignee_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    reviewer_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    assignment_dt: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    start_dt: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    end_dt: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    deadline_dt: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    budget_amount: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(14, 2))
    currency: str = Field(default="USD", nullable=False)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")


class TaskTransfer(UUIDMixin, SQLModel, table=True):
    """Append-only record of an assignee or reviewer change."""

    __tablename__ = "task_transfers"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    kind: str = Field(nullable=False)  # assignee | reviewer
    from_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    to_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    changed_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    timestamp: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
