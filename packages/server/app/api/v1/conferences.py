"""
Conference API endpoints, nested under an organization.

POST   /api/v1/organizations/{orgId}/conferences                  — Create
GET    /api/v1/organizations/{orgId}/conferences                  — List
GET    /api/v1/organizations/{orgId}/conferences/{confId}         — Get
PATCH  /api/v1/organizations/{orgId}/conferences/{confId}         — Update
DELETE /api/v1/organizations/{orgId}/conferences/{confId}         — Delete
POST   /api/v1/organizations/{orgId}/conferences/{confId}/join    — Join
POST   /api/v1/organizations/{orgId}/conferences/{confId}/leave   — Leave
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import RequestContext, require_authenticated, require_roles
from app.core.authz import RolePolicy
from app.core.database import get_session
from app.services import conferences as conference_service
from confhub_shared.schemas.common import ConferenceRole, MessageResponse, OrgRole
from confhub_shared.schemas.conferences import (
    ConferenceCreateRequest,
    ConferenceListResponse,
    ConferenceResponse,
    ConferenceUpdateRequest,
)

router = APIRouter()

CREATE_POLICY = RolePolicy(org={OrgRole.OWNER, OrgRole.ADMIN})
LIST_POLICY = RolePolicy(org={OrgRole.OWNER, OrgRole.ADMIN, OrgRole.MEMBER})
READ_POLICY = RolePolicy(
    org={OrgRole.OWNER, OrgRole.ADMIN, OrgRole.MEMBER},
    conf=set(ConferenceRole),
)
UPDATE_POLICY = RolePolicy(
    org={OrgRole.OWNER, OrgRole.ADMIN},
    conf={ConferenceRole.OWNER, ConferenceRole.ADMIN, ConferenceRole.ORGANIZER},
)
DELETE_POLICY = RolePolicy(
    org={OrgRole.OWNER},
    conf={ConferenceRole.OWNER, ConferenceRole.ORGANIZER},
)


@router.post("", response_model=ConferenceResponse, status_code=201)
async def create_conference(
    orgId: uuid.UUID,
    body: ConferenceCreateRequest,
    ctx: RequestContext = Depends(require_roles(CREATE_POLICY)),
    session: AsyncSession = Depends(get_session),
):
    """Create a conference; org OWNERs and ADMINs are granted on it automatically."""
    conference = await conference_service.create_conference(
        body, ctx.identity.user_id, orgId, session
    )
    return ConferenceResponse.model_validate(conference)


@router.get("", response_model=ConferenceListResponse)
async def list_conferences(
    orgId: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(LIST_POLICY)),
    session: AsyncSession = Depends(get_session),
):
    conferences = await conference_service.list_conferences(orgId, session)
    return ConferenceListResponse(
        data=[ConferenceResponse.model_validate(c) for c in conferences]
    )


@router.get("/{confId}", response_model=ConferenceResponse)
async def get_conference(
    orgId: uuid.UUID,
    confId: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(READ_POLICY)),
    session: AsyncSession = Depends(get_session),
):
    conference = await conference_service.get_conference(orgId, confId, session)
    return ConferenceResponse.model_validate(conference)


@router.patch("/{confId}", response_model=ConferenceResponse)
async def update_conference(
    orgId: uuid.UUID,
    confId: uuid.UUID,
    body: ConferenceUpdateRequest,
    ctx: RequestContext = Depends(require_roles(UPDATE_POLICY)),
    session: AsyncSession = Depends(get_session),
):
    conference = await conference_service.update_conference(orgId, confId, body, session)
    return ConferenceResponse.model_validate(conference)


@router.delete("/{confId}", response_model=MessageResponse)
async def delete_conference(
    orgId: uuid.UUID,
    confId: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(DELETE_POLICY)),
    session: AsyncSession = Depends(get_session),
):
    await conference_service.delete_conference(orgId, confId, session)
    return MessageResponse(message="Conference deleted successfully")


@router.post("/{confId}/join", response_model=MessageResponse)
async def join_conference(
    orgId: uuid.UUID,
    confId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    await conference_service.join_conference(ctx.identity.user_id, orgId, confId, session)
    return MessageResponse(message="Joined conference successfully")


@router.post("/{confId}/leave", response_model=MessageResponse)
async def leave_conference(
    orgId: uuid.UUID,
    confId: uuid.UUID,
    ctx: RequestContext = Depends(require_authenticated),
    session: AsyncSession = Depends(get_session),
):
    await conference_service.leave_conference(ctx.identity.user_id, orgId, confId, session)
    return MessageResponse(message="Left conference successfully")
