"""Team schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import UUID4, BaseModel, Field

from .common import Pagination, UserSummary


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class TeamRead(BaseModel):
    id: UUID4
    org_id: UUID4
    name: str
    description: Optional[str] = None
    created_by: Optional[UUID4] = None
    member_count: int = 0
    project_count: int = 0
    created_at: datetime
    updated_at: datetime


class TeamListResponse(BaseModel):
    teams: List[TeamRead]


class TeamMemberAdd(BaseModel):
    user_id: UUID4
    role: Optional[str] = Field(default=None, max_length=100)


class TeamMemberRead(BaseModel):
    team_id: UUID4
    user_id: UUID4
    role: Optional[str] = None
    joined_at: datetime
    user: Optional[UserSummary] = None


class TeamMemberListResponse(BaseModel):
    members: List[TeamMemberRead]
    pagination: Pagination
