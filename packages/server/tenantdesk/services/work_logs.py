"""Work logs: time booked against a project (and optionally one of its tasks)."""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core import audit
from tenantdesk.core.errors import ValidationError
from tenantdesk.core.guard import RequestContext
from tenantdesk.core.scoping import load_task
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.base import as_utc
from tenantdesk.models.project import Project
from tenantdesk.models.user import User
from tenantdesk.models.work_log import WorkLog, WorkLogSegment
from tenantdesk.services.listing import (
    ListParams,
    date_range,
    narrow,
    order_by,
    paginate,
    search_filter,
)
from tenantdesk_shared.schemas.audit import WorkLogListResponse
from tenantdesk_shared.schemas.common import UserSummary
from tenantdesk_shared.schemas.tasks import WorkLogCreate, WorkLogRead, WorkLogSegmentRead

log = structlog.get_logger()

WORK_LOG_SORT_COLUMNS = {
    "date": WorkLog.created_at,
    "duration": WorkLog.total_duration_min,
    "user": User.name,
}


def segment_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between start and end; end must come after start."""
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise ValidationError("Segment end must be after its start")
    return int((end - start).total_seconds() // 60)


def _read(entry: WorkLog, user: Optional[User], segments: list[WorkLogSegment]) -> WorkLogRead:
    return WorkLogRead(
        id=entry.id,
        org_id=entry.org_id,
        project_id=entry.project_id,
        task_id=entry.task_id,
        user_id=entry.user_id,
        note=entry.note,
        total_duration_min=entry.total_duration_min,
        created_at=entry.created_at,
        user=UserSummary.model_validate(user) if user else None,
        segments=[WorkLogSegmentRead.model_validate(s) for s in segments],
    )


async def list_work_logs(
    session: AsyncSession,
    project: Project,
    params: ListParams,
    *,
    user_id: Optional[uuid.UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> WorkLogListResponse:
    stmt = (
        select(WorkLog, User)
        .join(User, User.id == WorkLog.user_id)
        .where(WorkLog.org_id == project.org_id, WorkLog.project_id == project.id)
    )
    stmt = narrow(
        stmt,
        WorkLog.user_id == user_id if user_id is not None else None,
        search_filter(params.search, User.name, User.email),
        *date_range(WorkLog.created_at, start_date, end_date),
    )
    stmt = stmt.order_by(
        *order_by(WORK_LOG_SORT_COLUMNS, params.sort_by, params.sort_order, "date", WorkLog.id)
    )
    rows, pagination = await paginate(session, stmt, params.page, params.limit)

    segments: dict[uuid.UUID, list[WorkLogSegment]] = defaultdict(list)
    if rows:
        result = await session.execute(
            select(WorkLogSegment)
            .where(WorkLogSegment.work_log_id.in_([entry.id for entry, _ in rows]))
            .order_by(WorkLogSegment.start_dt.asc())
        )
        for segment in result.scalars().all():
            segments[segment.work_log_id].append(segment)

    return WorkLogListResponse(
        work_logs=[_read(entry, user, segments[entry.id]) for entry, user in rows],
        pagination=pagination,
    )


async def create_work_log(
    session: AsyncSession,
    store: ScopeStore,
    ctx: RequestContext,
    project: Project,
    body: WorkLogCreate,
) -> WorkLogRead:
    if body.task_id is not None:
        await load_task(store, body.task_id, ctx.org_id, project.id)

    minutes = [segment_minutes(s.start_dt, s.end_dt) for s in body.segments]
    entry = WorkLog(
        org_id=ctx.org_id,
        project_id=project.id,
        task_id=body.task_id,
        user_id=ctx.user_id,
        note=body.note,
        total_duration_min=sum(minutes),
    )
    session.add(entry)
    await session.flush()

    segments = [
        WorkLogSegment(work_log_id=entry.id, start_dt=s.start_dt, end_dt=s.end_dt, duration_min=m)
        for s, m in zip(body.segments, minutes)
    ]
    session.add_all(segments)
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="WorkLog",
        entity_id=entry.id,
        action="work_log.created",
        actor_user_id=ctx.user_id,
        changes={"task_id": entry.task_id, "total_duration_min": entry.total_duration_min},
    )
    await session.flush()

    log.info("work_log.created", work_log_id=str(entry.id), minutes=entry.total_duration_min)
    return _read(entry, await session.get(User, ctx.user_id), segments)
