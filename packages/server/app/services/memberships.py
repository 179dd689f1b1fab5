"""
Tenant membership lifecycle — the permission matrix for creating, updating
and removing (user, tenant, role) memberships.

The actor's own role is read from the identity snapshot taken at the start
of the request; the target's membership is read from the canonical table.

Create:
- OWNER is never granted here; ownership comes only from tenant creation.
- An actor with no membership in the tenant may only onboard themselves,
  and only with the lowest role (SUBMITTER). An existing row for the pair
  is a conflict.
- An actor who is already a member cannot grant to themselves; granting to
  someone else needs OWNER or ORGANIZER.

Remove:
- OWNER memberships are never removed.
- Members may remove themselves; OWNER/ORGANIZER may remove anyone else.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import atomic
from app.core.errors import Conflict, Forbidden, NotFound
from app.core.identity import IdentityClaims
from app.models.membership import TenantMembership
from app.services.tenants import get_tenant
from app.services.users import get_user, refresh_role_cache
from confhub_shared.schemas.common import (
    LOWEST_TENANT_ROLE,
    TENANT_MANAGER_ROLES,
    TenantRole,
)
from confhub_shared.schemas.memberships import (
    MembershipCreateRequest,
    MembershipUpdateRequest,
)

log = structlog.get_logger()


async def _find(
    tenant_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> TenantMembership | None:
    result = await session.execute(
        select(TenantMembership).where(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def create_membership(
    actor: IdentityClaims,
    tenant_id: uuid.UUID,
    req: MembershipCreateRequest,
    session: AsyncSession,
) -> TenantMembership:
    """Create a membership according to the self-onboarding / grant matrix."""
    if req.role == TenantRole.OWNER:
        raise Forbidden(detail="Cannot create OWNER membership")

    current = actor.tenant_role(tenant_id)
    is_self = req.user_id == actor.user_id

    if current is None:
        if not is_self:
            raise Forbidden(detail="Cannot create membership for other users")
        if req.role != LOWEST_TENANT_ROLE:
            raise Forbidden(
                detail=f"Self onboarding only allowed as {LOWEST_TENANT_ROLE.value}"
            )
    else:
        if is_self:
            raise Forbidden(detail="You are already a member of this tenant")
        if current not in TENANT_MANAGER_ROLES:
            raise Forbidden(detail="Only OWNER/ORGANIZER can add other users")

    await get_tenant(tenant_id, session)
    await get_user(req.user_id, session)
    if await _find(tenant_id, req.user_id, session):
        raise Conflict("User is already a member of this tenant")

    membership = TenantMembership(
        user_id=req.user_id,
        tenant_id=tenant_id,
        role=req.role.value,
    )
    try:
        async with atomic(session, "membership.create"):
            session.add(membership)
            await refresh_role_cache([req.user_id], session)
    except IntegrityError:
        # A concurrent request created the same (user, tenant) row first
        raise Conflict("User is already a member of this tenant")

    log.info(
        "membership.created",
        tenant_id=str(tenant_id),
        user_id=str(req.user_id),
        role=req.role.value,
        actor=str(actor.user_id),
        self_onboarding=current is None,
    )
    return membership


async def list_memberships(tenant_id: uuid.UUID, session: AsyncSession) -> list[TenantMembership]:
    await get_tenant(tenant_id, session)
    result = await session.execute(
        select(TenantMembership)
        .where(TenantMembership.tenant_id == tenant_id)
        .order_by(TenantMembership.created_at)
    )
    return list(result.scalars().all())


async def get_membership(
    actor: IdentityClaims,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    session: AsyncSession,
) -> TenantMembership:
    """Members may read their own membership; OWNER/ORGANIZER may read any."""
    current = actor.tenant_role(tenant_id)
    if current is None:
        raise Forbidden(reason="NotAMember")
    if user_id != actor.user_id and current not in TENANT_MANAGER_ROLES:
        raise Forbidden(reason="InsufficientRole")

    membership = await _find(tenant_id, user_id, session)
    if membership is None:
        raise NotFound("Membership not found")
    return membership


async def update_membership(
    actor: IdentityClaims,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    req: MembershipUpdateRequest,
    session: AsyncSession,
) -> TenantMembership:
    """Change a member's role (OWNER/ORGANIZER only)."""
    if actor.tenant_role(tenant_id) not in TENANT_MANAGER_ROLES:
        raise Forbidden(reason="InsufficientRole")
    if req.role == TenantRole.OWNER:
        raise Forbidden(detail="Cannot grant OWNER membership")

    membership = await _find(tenant_id, user_id, session)
    if membership is None:
        raise NotFound("Membership not found")
    if membership.role == TenantRole.OWNER.value:
        raise Conflict("The OWNER membership cannot change role")

    previous = membership.role
    async with atomic(session, "membership.update"):
        membership.role = req.role.value
        session.add(membership)
        await refresh_role_cache([user_id], session)

    log.info(
        "membership.updated",
        tenant_id=str(tenant_id),
        user_id=str(user_id),
        previous_role=previous,
        role=req.role.value,
    )
    return membership


async def remove_membership(
    actor: IdentityClaims,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    session: AsyncSession,
) -> None:
    """Remove a membership. Immediately revokes access in the tenant."""
    current = actor.tenant_role(tenant_id)
    if current is None:
        raise Forbidden(reason="NotAMember")

    target = await _find(tenant_id, user_id, session)
    if target is None:
        raise NotFound("Membership not found")
    if target.role == TenantRole.OWNER.value:
        raise Forbidden(detail="Cannot remove owner of a tenant")
    if user_id != actor.user_id and current not in TENANT_MANAGER_ROLES:
        raise Forbidden(detail="Insufficient permission to delete other user memberships")

    async with atomic(session, "membership.remove"):
        await session.delete(target)
        await refresh_role_cache([user_id], session)

    log.info(
        "membership.removed",
        tenant_id=str(tenant_id),
        user_id=str(user_id),
        actor=str(actor.user_id),
    )
