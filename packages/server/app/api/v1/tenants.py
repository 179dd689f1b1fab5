"""
Tenant and tenant-membership API endpoints (flat single-tenant variant).

POST   /api/v1/tenants                                  — Create a tenant (caller becomes OWNER)
POST   /api/v1/tenants/{tenantId}/memberships           — Create a membership
GET    /api/v1/tenants/{tenantId}/memberships           — List memberships (OWNER/ORGANIZER)
GET    /api/v1/tenants/{tenantId}/memberships/{userId}  — Get a membership
PUT    /api/v1/tenants/{tenantId}/memberships/{userId}  — Change a member's role
DELETE /api/v1/tenants/{tenantId}/memberships/{userId}  — Remove a membership

Create, get, update and remove decide permissions in the service against
the caller's identity snapshot; only listing has a fixed route policy.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import RequestContext, require_authenticated, require_roles
from app.core.authz import TenantPolicy
from app.core.database import get_session
from app.services import memberships as membership_service
from app.services import tenants as tenant_service
from confhub_shared.schemas.common import TENANT_MANAGER_ROLES, MessageResponse
from confhub_shared.schemas.memberships import (
    MembershipCreateRequest,
    MembershipListResponse,
    MembershipResponse,
    MembershipUpdateRequest,
    TenantCreateRequest,
    TenantResponse,
)

router = APIRouter()

TENANT_MANAGERS = TenantPolicy(roles=TENANT_MANAGER_ROLES)


@router.post("", response_model=TenantResponse, status_code=201)
async def create_tenant(
    body: TenantCreateRequest,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    tenant = await tenant_service.create_tenant(body, ctx.identity.user_id, session)
    return TenantResponse.model_validate(tenant)


@router.post("/{tenantId}/memberships", response_model=MembershipResponse, status_code=201)
async def create_membership(
    tenantId: uuid.UUID,
    body: MembershipCreateRequest,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    """Self-onboard as SUBMITTER, or (OWNER/ORGANIZER) add another user."""
    membership = await membership_service.create_membership(ctx.identity, tenantId, body, session)
    return MembershipResponse.model_validate(membership)


@router.get("/{tenantId}/memberships", response_model=MembershipListResponse)
async def list_memberships(
    tenantId: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(TENANT_MANAGERS)),
    session: AsyncSession = Depends(get_session),
):
    memberships = await membership_service.list_memberships(tenantId, session)
    return MembershipListResponse(
        data=[MembershipResponse.model_validate(m) for m in memberships]
    )


@router.get("/{tenantId}/memberships/{userId}", response_model=MembershipResponse)
async def get_membership(
    tenantId: uuid.UUID,
    userId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    membership = await membership_service.get_membership(ctx.identity, tenantId, userId, session)
    return MembershipResponse.model_validate(membership)


@router.put("/{tenantId}/memberships/{userId}", response_model=MembershipResponse)
async def update_membership(
    tenantId: uuid.UUID,
    userId: uuid.UUID,
    body: MembershipUpdateRequest,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    membership = await membership_service.update_membership(
        ctx.identity, tenantId, userId, body, session
    )
    return MembershipResponse.model_validate(membership)


@router.delete("/{tenantId}/memberships/{userId}", response_model=MessageResponse)
async def remove_membership(
    tenantId: uuid.UUID,
    userId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.remove_membership(ctx.identity, tenantId, userId, session)
    return MessageResponse(message="Membership removed successfully")
