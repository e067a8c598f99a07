"""Budget and cost transactions."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class Transaction(UUIDMixin, SQLModel, table=True):
    __tablename__ = "transactions"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    task_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tasks.id")
    type: str = Field(nullable=False)  # BUDGET_ADD | EXPENSE | INCOME | ADJUSTMENT
    scope: str = Field(nullable=False, default="PROJECT")  # PROJECT | TASK
    amount: Decimal = Field(nullable=False, sa_type=sa.Numeric(14, 2))
    currency: str = Field(default="USD", nullable=False)
    occurred_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    note: Optional[str] = None
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
