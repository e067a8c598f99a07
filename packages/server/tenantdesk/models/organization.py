"""Organization, membership and invite models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    legal_name: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: str = Field(default="ACTIVE", nullable=False)  # ACTIVE | INACTIVE | SUSPENDED
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")


class OrgMember(SQLModel, table=True):
    """Membership of a user in an org. One row per (org, user)."""

    __tablename__ = "org_members"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="MEMBER")  # ADMIN | MAINTAINER | MEMBER
    joined_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )


class OrgInvite(UUIDMixin, SQLModel, table=True):
    __tablename__ = "org_invites"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False, default="MEMBER")
    token: str = Field(unique=True, nullable=False, index=True)
    status: str = Field(default="PENDING", nullable=False)  # PENDING | ACCEPTED | EXPIRED
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
