"""
Invite API endpoints.

GET    /api/v1/invites/organizations/{orgId}   — List outstanding invites (OWNER/ADMIN)
POST   /api/v1/invites/organizations/{orgId}   — Create an invite (OWNER/ADMIN)
POST   /api/v1/invites/accept/{token}          — Accept an invite (public)
DELETE /api/v1/invites/revoke/{token}          — Revoke an invite (OWNER/ADMIN of its org)

``conferenceId`` is an optional query parameter on the org routes.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import RequestContext, enforce, get_identity, require_roles
from app.core.authz import RolePolicy
from app.core.database import get_session
from app.core.identity import IdentityClaims
from app.core.tenancy import ScopeIds
from app.services import invites as invite_service
from confhub_shared.schemas.common import MessageResponse, OrgRole
from confhub_shared.schemas.invites import (
    InviteAcceptResponse,
    InviteCreateRequest,
    InviteListResponse,
    InviteResponse,
    InviteSummary,
)

router = APIRouter()

INVITE_MANAGERS = RolePolicy(org={OrgRole.OWNER, OrgRole.ADMIN})


@router.get("/organizations/{orgId}", response_model=InviteListResponse)
async def list_invites(
    orgId: uuid.UUID,
    conferenceId: Optional[uuid.UUID] = None,
    ctx: RequestContext = Depends(require_roles(INVITE_MANAGERS)),
    session: AsyncSession = Depends(get_session),
):
    """List outstanding invites. Tokens are never included."""
    invites = await invite_service.list_invites(orgId, session, conference_id=conferenceId)
    return InviteListResponse(data=[InviteSummary.model_validate(i) for i in invites])


@router.post("/organizations/{orgId}", response_model=InviteResponse, status_code=201)
async def create_invite(
    orgId: uuid.UUID,
    body: InviteCreateRequest,
    conferenceId: Optional[uuid.UUID] = None,
    ctx: RequestContext = Depends(require_roles(INVITE_MANAGERS)),
    session: AsyncSession = Depends(get_session),
):
    """Issue an invite. The token is returned here and nowhere else."""
    invite = await invite_service.create_invite(
        ctx.identity.user_id, body, orgId, conferenceId, session
    )
    return InviteResponse.model_validate(invite)


@router.post("/accept/{token}", response_model=InviteAcceptResponse)
async def accept_invite(
    token: str,
    session: AsyncSession = Depends(get_session),
):
    """Accept an invite. The token itself is the credential."""
    accepted = await invite_service.accept_invite(token, session)
    return InviteAcceptResponse(
        message="Invite accepted successfully",
        user_id=accepted.user.id,
        generated_password=accepted.generated_password,
    )


@router.delete("/revoke/{token}", response_model=MessageResponse)
async def revoke_invite(
    token: str,
    identity: IdentityClaims = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    # The org scope lives on the invite, not in the request
    invite = await invite_service.get_active_invite(token, session)
    enforce(INVITE_MANAGERS, identity, ScopeIds(org_id=invite.organization_id))
    await invite_service.revoke_invite(token, session)
    return MessageResponse(message="Invite revoked successfully")
