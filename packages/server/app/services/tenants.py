"""Tenant service — flat tenants whose creator becomes OWNER."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import atomic
from app.core.errors import Conflict, NotFound
from app.models.membership import TenantMembership
from app.models.tenant import Tenant
from app.services.users import get_user, refresh_role_cache
from confhub_shared.schemas.common import TenantRole
from confhub_shared.schemas.memberships import TenantCreateRequest

log = structlog.get_logger()

SLUG_TAKEN = "Tenant slug already taken"


async def _slug_taken(slug: str, session: AsyncSession) -> bool:
    result = await session.execute(select(Tenant.id).where(Tenant.slug == slug))
    return result.first() is not None


async def create_tenant(
    req: TenantCreateRequest, creator_id: uuid.UUID, session: AsyncSession
) -> Tenant:
    """Create a tenant and its single OWNER membership in one transaction."""
    async with atomic(session, "tenant.create"):
        await get_user(creator_id, session)

        if await _slug_taken(req.slug, session):
            raise Conflict(SLUG_TAKEN)

        tenant = Tenant(name=req.name, slug=req.slug, created_by=creator_id)
        session.add(tenant)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(SLUG_TAKEN)

        session.add(
            TenantMembership(
                user_id=creator_id,
                tenant_id=tenant.id,
                role=TenantRole.OWNER.value,
            )
        )
        await refresh_role_cache([creator_id], session)

    log.info("tenant.created", tenant_id=str(tenant.id), slug=req.slug, creator=str(creator_id))
    return tenant


async def get_tenant(tenant_id: uuid.UUID, session: AsyncSession) -> Tenant:
    tenant = await session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant
