"""Member and invite schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import UUID4, BaseModel, EmailStr, Field, field_validator

from .common import Pagination, Role, UserSummary


class InviteStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class MemberInviteRequest(BaseModel):
    """Invite someone to the org. ADMIN is granted only at org creation."""
    email: EmailStr
    role: Role = Role.MEMBER

    @field_validator("role")
    @classmethod
    def _not_admin(cls, value: Role) -> Role:
        if value == Role.ADMIN:
            raise ValueError("Invites may grant MAINTAINER or MEMBER only")
        return value


class MemberUpdateRequest(BaseModel):
    role: Role


class MemberSearchRequest(BaseModel):
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    org_id: UUID4
    user_id: UUID4
    role: Role
    joined_at: datetime
    user: Optional[UserSummary] = None


class MemberListResponse(BaseModel):
    members: List[MemberResponse]
    pagination: Pagination


class MemberSearchResponse(BaseModel):
    user: Optional[UserSummary] = None
    exists: bool
    is_member: bool = False
    member_role: Optional[Role] = None


class InviteResponse(BaseModel):
    id: UUID4
    org_id: UUID4
    email: str
    role: Role
    status: InviteStatus
    expires_at: datetime
    invited_by: UUID4
    token: Optional[str] = Field(default=None, description="Only returned to the inviting admin")


class MemberInviteResponse(BaseModel):
    """Either the member was added directly, or an invite was issued."""
    added: bool
    member: Optional[MemberResponse] = None
    invite: Optional[InviteResponse] = None
