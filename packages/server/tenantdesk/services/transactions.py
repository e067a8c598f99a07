"""Budget and cost transactions recorded against a project or one of its tasks."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core import audit
from tenantdesk.core.guard import RequestContext
from tenantdesk.core.scoping import load_task
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.base import utcnow
from tenantdesk.models.project import Project
from tenantdesk.models.transaction import Transaction
from tenantdesk_shared.schemas.common import TransactionScope
from tenantdesk_shared.schemas.projects import TransactionCreate, TransactionRead

log = structlog.get_logger()


async def list_transactions(session: AsyncSession, project: Project) -> list[TransactionRead]:
    result = await session.execute(
        select(Transaction)
        .where(Transaction.org_id == project.org_id, Transaction.project_id == project.id)
        .order_by(Transaction.occurred_at.desc())
    )
    return [TransactionRead.model_validate(t) for t in result.scalars().all()]


async def create_transaction(
    session: AsyncSession,
    store: ScopeStore,
    ctx: RequestContext,
    project: Project,
    body: TransactionCreate,
) -> Transaction:
    scope = TransactionScope.PROJECT
    if body.task_id is not None:
        await load_task(store, body.task_id, ctx.org_id, project.id)
        scope = TransactionScope.TASK

    tx = Transaction(
        org_id=ctx.org_id,
        project_id=project.id,
        task_id=body.task_id,
        type=body.type.value,
        scope=scope.value,
        amount=body.amount,
        currency=body.currency,
        occurred_at=body.occurred_at or utcnow(),
        note=body.note,
        created_by=ctx.user_id,
    )
    session.add(tx)
    await session.flush()

    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="Transaction",
        entity_id=tx.id,
        action="transaction.created",
        actor_user_id=ctx.user_id,
        changes={"type": tx.type, "amount": tx.amount, "currency": tx.currency, "task_id": tx.task_id},
    )
    log.info("transaction.created", transaction_id=str(tx.id), project_id=str(project.id), type=tx.type)
    return tx
