"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class User(UUIDMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    name: Optional[str] = None
    avatar: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # bcrypt hash
    status: str = Field(default="ACTIVE", nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
