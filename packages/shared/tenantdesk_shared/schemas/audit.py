"""Audit trail and paginated listing envelopes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import UUID4, BaseModel, Field

from .common import Pagination, UserSummary
from .tasks import WorkLogRead


class AuditLogRead(BaseModel):
    id: UUID4
    org_id: UUID4
    project_id: Optional[UUID4] = None
    entity_type: str
    entity_id: UUID4
    action: str
    actor_user_id: Optional[UUID4] = None
    changes: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    actor: Optional[UserSummary] = None


class AuditLogListResponse(BaseModel):
    audit_logs: List[AuditLogRead]
    pagination: Pagination


class WorkLogListResponse(BaseModel):
    work_logs: List[WorkLogRead]
    pagination: Pagination
