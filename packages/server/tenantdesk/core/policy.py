"""
Access policy: org membership and role checks.

Both functions take the identity and org id explicitly and only read from
the store. Role sets are explicit allow-lists; ADMIN passes a check only
when it is listed in the set.
"""

from __future__ import annotations

import uuid
from typing import AbstractSet, Optional

import structlog

from tenantdesk.core.errors import AccessDenied, InsufficientPermissions, Unauthorized, ValidationError
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.organization import OrgMember
from tenantdesk_shared.schemas.common import Role

log = structlog.get_logger()


async def resolve_membership(
    store: ScopeStore,
    identity: Optional[uuid.UUID],
    org_id: Optional[uuid.UUID],
) -> OrgMember:
    """Return the caller's membership in ``org_id``.

    Raises AccessDenied when there is none. Whether the org exists is never
    consulted, so non-members cannot tell real orgs from made-up ids.
    """
    if identity is None:
        raise Unauthorized()
    if org_id is None:
        raise ValidationError("Organization id is required")

    membership = await store.get_membership(org_id, identity)
    if membership is None:
        log.info("access.denied", user_id=str(identity), org_id=str(org_id))
        raise AccessDenied()
    return membership


async def require_role(
    store: ScopeStore,
    identity: Optional[uuid.UUID],
    org_id: Optional[uuid.UUID],
    allowed_roles: AbstractSet[Role],
) -> OrgMember:
    membership = await resolve_membership(store, identity, org_id)
    if Role(membership.role) not in allowed_roles:
        log.info(
            "access.insufficient_role",
            user_id=str(identity),
            org_id=str(org_id),
            role=membership.role,
            allowed=sorted(r.value for r in allowed_roles),
        )
        raise InsufficientPermissions()
    return membership
