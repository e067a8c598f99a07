"""Project model and its team links."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"
    __table_args__ = (
        sa.UniqueConstraint("org_id", "code", name="uq_project_org_code"),
    )

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    parent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="projects.id", index=True)
    name: str = Field(nullable=False)
    code: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(default="PLANNED", nullable=False)
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    deadline: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    budget_total: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(14, 2))
    currency: str = Field(default="USD", nullable=False)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")


class ProjectTeamLink(SQLModel, table=True):
    __tablename__ = "project_teams"

    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    team_id: uuid.UUID = Field(foreign_key="teams.id", primary_key=True)
