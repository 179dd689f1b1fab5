"""
Invite service — single-use tokens that pre-authorize a membership grant.

Acceptance provisions the user when needed, grants org/conference
membership with insert-ignore semantics and consumes the token, all in one
transaction. Replaying a consumed token is a plain 404.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import generate_password
from app.core.config import get_settings
from app.core.database import atomic, insert_ignore
from app.core.errors import BadRequest, Conflict, NotFound
from app.models.base import utcnow
from app.models.invite import Invite
from app.models.membership import ConferenceMember, OrgMember
from app.models.user import User
from app.services.conferences import get_conference, get_conference_member
from app.services.organizations import get_org, get_org_member
from app.services.users import (
    find_user_by_email,
    get_user,
    normalize_email,
    provision_user,
    refresh_role_cache,
)
from confhub_shared.schemas.common import (
    LOWEST_CONFERENCE_ROLE,
    LOWEST_ORG_ROLE,
    ConferenceRole,
    OrgRole,
    implied_conference_role,
)
from confhub_shared.schemas.invites import InviteCreateRequest

log = structlog.get_logger()
settings = get_settings()

TOKEN_BYTES = 32
PENDING_INVITE = "Invite already exists for this user"


@dataclass(frozen=True)
class AcceptedInvite:
    user: User
    organization_id: Optional[uuid.UUID]
    conference_id: Optional[uuid.UUID]
    generated_password: Optional[str] = None


def _scope_filter(query, organization_id: Optional[uuid.UUID], conference_id: Optional[uuid.UUID]):
    if organization_id is None:
        query = query.where(Invite.organization_id.is_(None))
    else:
        query = query.where(Invite.organization_id == organization_id)
    if conference_id is None:
        return query.where(Invite.conference_id.is_(None))
    return query.where(Invite.conference_id == conference_id)


async def _has_pending(
    email: str,
    organization_id: Optional[uuid.UUID],
    conference_id: Optional[uuid.UUID],
    session: AsyncSession,
) -> bool:
    result = await session.execute(
        _scope_filter(
            select(Invite.id).where(Invite.email == email, Invite.expires_at > utcnow()),
            organization_id,
            conference_id,
        )
    )
    return result.first() is not None


async def get_active_invite(token: str, session: AsyncSession) -> Invite:
    """Outstanding invite by exact token match; 404 when absent or expired."""
    result = await session.execute(
        select(Invite).where(Invite.token == token, Invite.expires_at > utcnow())
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFound("Invite not found or expired")
    return invite


async def list_invites(
    organization_id: uuid.UUID,
    session: AsyncSession,
    conference_id: Optional[uuid.UUID] = None,
) -> list[Invite]:
    await get_org(organization_id, session)
    query = select(Invite).where(
        Invite.organization_id == organization_id, Invite.expires_at > utcnow()
    )
    if conference_id is not None:
        query = query.where(Invite.conference_id == conference_id)
    result = await session.execute(query.order_by(Invite.created_at))
    return list(result.scalars().all())


async def create_invite(
    inviter_id: uuid.UUID,
    req: InviteCreateRequest,
    organization_id: uuid.UUID,
    conference_id: Optional[uuid.UUID],
    session: AsyncSession,
) -> Invite:
    """Issue an invite for an email into an org, optionally one of its conferences."""
    await get_org(organization_id, session)
    if conference_id is not None:
        await get_conference(organization_id, conference_id, session)

    email = normalize_email(req.email)
    inviter = await get_user(inviter_id, session)
    if inviter.email == email:
        raise BadRequest("You cannot invite yourself")
    if req.org_role == OrgRole.OWNER:
        raise BadRequest("Ownership cannot be granted by invite")

    if await _has_pending(email, organization_id, conference_id, session):
        raise Conflict(PENDING_INVITE)

    org_role = req.org_role or LOWEST_ORG_ROLE
    conf_role = req.conf_role

    target = await find_user_by_email(email, session)
    existing_org = None
    if target is not None:
        existing_org = await get_org_member(target.id, organization_id, session)
        if existing_org is not None:
            if conference_id is None:
                raise Conflict("User is already a member of this organization")
            org_role = OrgRole(existing_org.role)
        if conference_id is not None and await get_conference_member(
            target.id, conference_id, session
        ):
            raise Conflict("User is already a member of this conference")

    if conference_id is not None and conf_role is None:
        if existing_org is not None:
            conf_role = implied_conference_role(OrgRole(existing_org.role))
        if conf_role is None:
            raise BadRequest("Conference role is required")

    invite = Invite(
        token=secrets.token_hex(TOKEN_BYTES),
        email=email,
        organization_id=organization_id,
        conference_id=conference_id,
        org_role=org_role.value,
        conf_role=conf_role.value if conf_role else None,
        invited_by=inviter_id,
        expires_at=utcnow() + timedelta(days=settings.invite_ttl_days),
    )
    try:
        async with atomic(session, "invite.create"):
            # Expired rows still hold the unique (email, org, conference) slot
            await session.execute(
                _scope_filter(
                    delete(Invite).where(Invite.email == email, Invite.expires_at <= utcnow()),
                    organization_id,
                    conference_id,
                )
            )
            session.add(invite)
    except IntegrityError:
        raise Conflict(PENDING_INVITE)

    log.info(
        "invite.created",
        invite_id=str(invite.id),
        org_id=str(organization_id),
        conf_id=str(conference_id) if conference_id else None,
        inviter=str(inviter_id),
        existing_user=target is not None,
    )
    return invite


async def accept_invite(token: str, session: AsyncSession) -> AcceptedInvite:
    """Consume an invite and grant what it pre-authorizes.

    A user is provisioned for unknown emails with a generated password that
    is returned exactly once. Grants are insert-ignore, so an acceptance
    racing another one for the same user never duplicates a membership.
    """
    async with atomic(session, "invite.accept"):
        invite = await get_active_invite(token, session)

        generated_password = None
        user = await find_user_by_email(invite.email, session)
        if user is None:
            # Another acceptance for the same email may provision it first
            password = generate_password()
            user, created = await provision_user(
                invite.email,
                password,
                invite.email.split("@")[0],
                session,
                email_verified=True,
            )
            if created:
                generated_password = password

        if invite.organization_id is not None:
            org_role = OrgRole(invite.org_role) if invite.org_role else LOWEST_ORG_ROLE
            await insert_ignore(
                session,
                OrgMember,
                user_id=user.id,
                organization_id=invite.organization_id,
                role=org_role.value,
            )
        if invite.conference_id is not None:
            conf_role = (
                ConferenceRole(invite.conf_role) if invite.conf_role else LOWEST_CONFERENCE_ROLE
            )
            await insert_ignore(
                session,
                ConferenceMember,
                user_id=user.id,
                conference_id=invite.conference_id,
                role=conf_role.value,
            )

        consumed = await session.execute(delete(Invite).where(Invite.token == token))
        if consumed.rowcount == 0:
            raise NotFound("Invite not found or expired")
        await refresh_role_cache([user.id], session)

    log.info(
        "invite.accepted",
        invite_id=str(invite.id),
        user_id=str(user.id),
        provisioned=generated_password is not None,
    )
    return AcceptedInvite(
        user=user,
        organization_id=invite.organization_id,
        conference_id=invite.conference_id,
        generated_password=generated_password,
    )


async def revoke_invite(token: str, session: AsyncSession) -> None:
    """Delete an outstanding invite; 404 when there was nothing to revoke."""
    async with atomic(session, "invite.revoke"):
        invite = await get_active_invite(token, session)
        await session.delete(invite)
    log.info("invite.revoked", invite_id=str(invite.id), org_id=str(invite.organization_id))


async def purge_expired_invites(session: AsyncSession) -> int:
    result = await session.execute(delete(Invite).where(Invite.expires_at <= utcnow()))
    count = result.rowcount or 0
    if count:
        log.info("invite.purged", count=count)
    return count
