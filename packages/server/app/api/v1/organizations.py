"""
Organization API endpoints.

GET    /api/v1/organizations                — List orgs for the caller, with role
GET    /api/v1/organizations/public         — List publicly joinable orgs
POST   /api/v1/organizations                — Create an org (caller becomes OWNER)
GET    /api/v1/organizations/{slug}         — Get org details by slug
PATCH  /api/v1/organizations/{orgId}        — Update org (OWNER/ADMIN)
DELETE /api/v1/organizations/{orgId}        — Delete org and cascade (OWNER)
POST   /api/v1/organizations/{orgId}/join   — Join a public org as MEMBER
POST   /api/v1/organizations/{orgId}/leave  — Leave an org
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import RequestContext, require_authenticated, require_roles
from app.core.authz import RolePolicy
from app.core.database import get_session
from app.services import organizations as org_service
from confhub_shared.schemas.common import MessageResponse, OrgRole
from confhub_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgListItem,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)

router = APIRouter()

ORG_MANAGERS = RolePolicy(org={OrgRole.OWNER, OrgRole.ADMIN})
ORG_OWNER = RolePolicy(org={OrgRole.OWNER})


@router.get("", response_model=OrgListResponse)
async def list_orgs(
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(ctx.identity.user_id, session)
    return OrgListResponse(data=[OrgListItem(**item) for item in items])


@router.get("/public", response_model=OrgListResponse)
async def list_public_orgs(
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    """List orgs anyone may join, with the caller's role where they hold one."""
    orgs = await org_service.list_public_orgs(session)
    return OrgListResponse(
        data=[
            OrgListItem(
                id=org.id,
                name=org.name,
                slug=org.slug,
                is_public=org.is_public,
                role=ctx.identity.org_role(org.id),
            )
            for org in orgs
        ]
    )


@router.post("", response_model=OrgResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its OWNER."""
    org = await org_service.create_org(body, ctx.identity.user_id, session)
    return OrgResponse.model_validate(org)


@router.get("/{slug}", response_model=OrgResponse)
async def get_org(
    slug: str,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.get_org_by_slug(slug, session)
    return OrgResponse.model_validate(org)


@router.patch("/{orgId}", response_model=OrgResponse)
async def update_org(
    orgId: uuid.UUID,
    body: OrgUpdateRequest,
    ctx: RequestContext = Depends(require_roles(ORG_MANAGERS)),
    session: AsyncSession = Depends(get_session),
):
    """Update org fields (OWNER/ADMIN). Settings are deep-merged."""
    org = await org_service.update_org(orgId, body, session)
    return OrgResponse.model_validate(org)


@router.delete("/{orgId}", response_model=MessageResponse)
async def delete_org(
    orgId: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(ORG_OWNER)),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org, its conferences and every membership referencing them."""
    await org_service.delete_org(ctx.identity.user_id, orgId, session)
    return MessageResponse(message="Organization deleted successfully")


@router.post("/{orgId}/join", response_model=MessageResponse)
async def join_org(
    orgId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    await org_service.join_public_org(ctx.identity.user_id, orgId, session)
    return MessageResponse(message="Joined organization successfully")


@router.post("/{orgId}/leave", response_model=MessageResponse)
async def leave_org(
    orgId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    await org_service.leave_org(ctx.identity.user_id, orgId, session)
    return MessageResponse(message="Left organization successfully")
