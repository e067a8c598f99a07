"""
Organization-related Pydantic schemas shared between server and clients.

Covers: Org CRUD request/response, membership role view, org status.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import Role


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OrgStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Organization display name")
    legal_name: str = Field(..., min_length=1, max_length=200)
    country: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=1, max_length=50)


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    legal_name: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    status: Optional[OrgStatus] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgCounts(BaseModel):
    members: int = 0
    teams: int = 0
    projects: int = 0


class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    legal_name: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: OrgStatus
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgListItem(OrgResponse):
    role: Role  # the requesting user's role in this org
    counts: OrgCounts = Field(default_factory=OrgCounts)


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


class ProjectBrief(BaseModel):
    id: uuid.UUID
    name: str
    code: str
    status: str

    model_config = {"from_attributes": True}


class OrgDetailResponse(OrgResponse):
    counts: OrgCounts = Field(default_factory=OrgCounts)
    projects: list[ProjectBrief] = Field(default_factory=list)


class RoleResponse(BaseModel):
    role: Role
