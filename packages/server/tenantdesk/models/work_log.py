"""Work log and its time segments."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class WorkLog(UUIDMixin, SQLModel, table=True):
    __tablename__ = "work_logs"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    task_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tasks.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    note: Optional[str] = None
    total_duration_min: int = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )


class WorkLogSegment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "work_log_segments"

    work_log_id: uuid.UUID = Field(foreign_key="work_logs.id", nullable=False, index=True)
    start_dt: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    end_dt: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    duration_min: int = Field(nullable=False)
