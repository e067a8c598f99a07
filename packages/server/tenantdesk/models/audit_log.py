"""Audit log model (append-only)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import utcnow


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    project_id: Optional[uuid.UUID] = Field(default=None, index=True)
    entity_type: str = Field(nullable=False)  # Project | Task | Team | WorkLog | Transaction
    entity_id: uuid.UUID = Field(nullable=False)
    action: str = Field(nullable=False)  # e.g. project.created, task.updated
    actor_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    changes: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
    timestamp: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        sa_type=sa.DateTime(timezone=True),
    )
