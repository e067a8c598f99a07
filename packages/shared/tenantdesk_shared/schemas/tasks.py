"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import UUID4, BaseModel, Field

from .common import TaskPriority, TaskStatus, TaskType, UserSummary


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    type: TaskType = TaskType.TASK
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.P4
    assignee_user_id: Optional[UUID4] = None
    reviewer_user_id: Optional[UUID4] = None
    assignment_dt: Optional[datetime] = None
    start_dt: Optional[datetime] = None
    end_dt: Optional[datetime] = None
    deadline_dt: Optional[datetime] = None


class TaskCreate(TaskBase):
    parent_id: Optional[UUID4] = None
    budget_amount: Optional[Decimal] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)


class OrgTaskCreate(TaskCreate):
    """Org-wide create: the owning project travels in the body."""
    project_id: UUID4


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    type: Optional[TaskType] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_user_id: Optional[UUID4] = None
    reviewer_user_id: Optional[UUID4] = None
    assignment_dt: Optional[datetime] = None
    start_dt: Optional[datetime] = None
    end_dt: Optional[datetime] = None
    deadline_dt: Optional[datetime] = None


class TaskRead(TaskBase):
    id: UUID4
    project_id: UUID4
    parent_id: Optional[UUID4] = None
    budget_amount: Optional[Decimal] = None
    currency: str = "USD"
    created_by: Optional[UUID4] = None
    child_count: int = 0
    dependency_ids: List[UUID4] = Field(default_factory=list)
    blocking_ids: List[UUID4] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    tasks: List[TaskRead]


class TaskTransferRead(BaseModel):
    id: UUID4
    kind: str
    from_user_id: Optional[UUID4] = None
    to_user_id: Optional[UUID4] = None
    changed_by: UUID4
    timestamp: datetime

    model_config = {"from_attributes": True}


class TaskChild(BaseModel):
    id: UUID4
    title: str
    status: TaskStatus
    priority: TaskPriority

    model_config = {"from_attributes": True}


class TaskDetail(TaskRead):
    children: List[TaskChild] = Field(default_factory=list)
    transfers: List[TaskTransferRead] = Field(default_factory=list)
    work_log_count: int = 0


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

class DependencyAdd(BaseModel):
    """Request body for POST /tasks/{task_id}/dependencies."""
    blocked_by_id: UUID4


class DependencyRead(BaseModel):
    task_id: UUID4
    blocked_by_id: UUID4


# ---------------------------------------------------------------------------
# Work logs
# ---------------------------------------------------------------------------

class WorkLogSegmentIn(BaseModel):
    start_dt: datetime
    end_dt: datetime


class WorkLogCreate(BaseModel):
    task_id: Optional[UUID4] = None
    note: Optional[str] = None
    segments: List[WorkLogSegmentIn] = Field(min_length=1)


class WorkLogSegmentRead(BaseModel):
    id: UUID4
    start_dt: datetime
    end_dt: datetime
    duration_min: int

    model_config = {"from_attributes": True}


class WorkLogRead(BaseModel):
    id: UUID4
    org_id: UUID4
    project_id: UUID4
    task_id: Optional[UUID4] = None
    user_id: UUID4
    note: Optional[str] = None
    total_duration_min: int
    created_at: datetime
    user: Optional[UserSummary] = None
    segments: List[WorkLogSegmentRead] = Field(default_factory=list)
