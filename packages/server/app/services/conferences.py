"""
Conference service — conferences nested under an organization.

Creating a conference grants the creator OWNER (when they own the org) or
ADMIN, and mirrors every org OWNER/ADMIN onto the new conference with the
same level, so org-wide administrators are empowered without extra grants.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import atomic, insert_ignore
from app.core.errors import Conflict, Forbidden, NotFound
from app.models.conference import Conference
from app.models.invite import Invite
from app.models.membership import ConferenceMember, OrgMember
from app.models.organization import Organization
from app.services.organizations import get_org, get_org_member
from app.services.users import get_user, refresh_role_cache
from confhub_shared.schemas.common import (
    LOWEST_CONFERENCE_ROLE,
    ConferenceRole,
    OrgRole,
    implied_conference_role,
)
from confhub_shared.schemas.conferences import (
    ConferenceCreateRequest,
    ConferenceUpdateRequest,
)

log = structlog.get_logger()

DUPLICATE_NAME = "Conference with this name already exists in this organization"


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def _name_taken(
    org_id: uuid.UUID,
    name: str,
    session: AsyncSession,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    query = select(Conference.id).where(
        Conference.organization_id == org_id, Conference.name == name
    )
    if exclude_id is not None:
        query = query.where(Conference.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def get_conference_member(
    user_id: uuid.UUID, conf_id: uuid.UUID, session: AsyncSession
) -> ConferenceMember | None:
    result = await session.execute(
        select(ConferenceMember).where(
            ConferenceMember.user_id == user_id,
            ConferenceMember.conference_id == conf_id,
        )
    )
    return result.scalar_one_or_none()


async def create_conference(
    req: ConferenceCreateRequest,
    creator_id: uuid.UUID,
    org_id: uuid.UUID,
    session: AsyncSession,
) -> Conference:
    """Create a conference, link it to its org and fan out admin grants."""
    async with atomic(session, "conference.create"):
        org = await session.get(Organization, org_id)
        if org is None:
            raise NotFound("Organization not found")
        await get_user(creator_id, session)

        if await _name_taken(org_id, req.name, session):
            raise Conflict(DUPLICATE_NAME)

        creator_membership = await get_org_member(creator_id, org_id, session)
        if creator_membership is None:
            raise Forbidden(reason="NotAMember")

        conference = Conference(
            organization_id=org_id,
            name=req.name,
            slug=req.slug,
            description=req.description,
            details=req.details,
            cfp_open_date=_naive_utc(req.cfp_open_date),
            cfp_close_date=_naive_utc(req.cfp_close_date),
            created_by=creator_id,
        )
        session.add(conference)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(DUPLICATE_NAME)

        org.conference_ids = [*org.conference_ids, str(conference.id)]
        session.add(org)

        grants: dict[uuid.UUID, ConferenceRole] = {}
        admins = await session.execute(
            select(OrgMember).where(
                OrgMember.organization_id == org_id,
                OrgMember.role.in_([OrgRole.OWNER.value, OrgRole.ADMIN.value]),
            )
        )
        for member in admins.scalars().all():
            grants[member.user_id] = implied_conference_role(OrgRole(member.role))

        if creator_membership.role == OrgRole.OWNER.value:
            grants[creator_id] = ConferenceRole.OWNER
        else:
            grants[creator_id] = ConferenceRole.ADMIN

        for user_id, role in grants.items():
            session.add(
                ConferenceMember(
                    user_id=user_id,
                    conference_id=conference.id,
                    role=role.value,
                )
            )
        await refresh_role_cache(grants.keys(), session)

    log.info(
        "conference.created",
        conference_id=str(conference.id),
        org_id=str(org_id),
        creator=str(creator_id),
        grants=len(grants),
    )
    return conference


async def list_conferences(org_id: uuid.UUID, session: AsyncSession) -> list[Conference]:
    await get_org(org_id, session)
    result = await session.execute(
        select(Conference)
        .where(Conference.organization_id == org_id)
        .order_by(Conference.created_at)
    )
    return list(result.scalars().all())


async def get_conference(
    org_id: uuid.UUID, conf_id: uuid.UUID, session: AsyncSession
) -> Conference:
    """Get a conference that belongs to ``org_id``; 404 otherwise."""
    conference = await session.get(Conference, conf_id)
    if conference is None or conference.organization_id != org_id:
        raise NotFound("Conference not found")
    return conference


async def update_conference(
    org_id: uuid.UUID,
    conf_id: uuid.UUID,
    req: ConferenceUpdateRequest,
    session: AsyncSession,
) -> Conference:
    conference = await get_conference(org_id, conf_id, session)

    async with atomic(session, "conference.update"):
        if req.name is not None and req.name != conference.name:
            if await _name_taken(org_id, req.name, session, exclude_id=conf_id):
                raise Conflict(DUPLICATE_NAME)
            conference.name = req.name
        if req.slug is not None:
            conference.slug = req.slug
        if req.description is not None:
            conference.description = req.description
        if req.details is not None:
            conference.details = req.details
        if req.cfp_open_date is not None:
            conference.cfp_open_date = _naive_utc(req.cfp_open_date)
        if req.cfp_close_date is not None:
            conference.cfp_close_date = _naive_utc(req.cfp_close_date)
        session.add(conference)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(DUPLICATE_NAME)

    log.info("conference.updated", conference_id=str(conf_id), org_id=str(org_id))
    return conference


async def delete_conference(
    org_id: uuid.UUID, conf_id: uuid.UUID, session: AsyncSession
) -> None:
    """Delete a conference, unlink it from its org and drop its memberships."""
    conference = await get_conference(org_id, conf_id, session)

    async with atomic(session, "conference.delete"):
        members = await session.execute(
            select(ConferenceMember.user_id).where(ConferenceMember.conference_id == conf_id)
        )
        affected = set(members.scalars().all())

        await session.execute(
            delete(ConferenceMember).where(ConferenceMember.conference_id == conf_id)
        )
        await session.execute(delete(Invite).where(Invite.conference_id == conf_id))

        org = await get_org(conference.organization_id, session)
        org.conference_ids = [c for c in org.conference_ids if c != str(conf_id)]
        session.add(org)

        await session.delete(conference)
        await refresh_role_cache(affected, session)

    log.info("conference.deleted", conference_id=str(conf_id), org_id=str(org_id))


async def join_conference(
    user_id: uuid.UUID, org_id: uuid.UUID, conf_id: uuid.UUID, session: AsyncSession
) -> ConferenceMember:
    """Join a conference of an org the user belongs to."""
    await get_conference(org_id, conf_id, session)

    org_membership = await get_org_member(user_id, org_id, session)
    if org_membership is None:
        raise Forbidden(reason="NotAMember", detail="You are not a member of this organization")
    if await get_conference_member(user_id, conf_id, session):
        raise Conflict("You are already a member of this conference")

    role = implied_conference_role(OrgRole(org_membership.role)) or LOWEST_CONFERENCE_ROLE

    async with atomic(session, "conference.join"):
        await insert_ignore(
            session,
            ConferenceMember,
            user_id=user_id,
            conference_id=conf_id,
            role=role.value,
        )
        await refresh_role_cache([user_id], session)

    log.info("conference.joined", conference_id=str(conf_id), user_id=str(user_id), role=role.value)
    return await get_conference_member(user_id, conf_id, session)


async def leave_conference(
    user_id: uuid.UUID, org_id: uuid.UUID, conf_id: uuid.UUID, session: AsyncSession
) -> None:
    await get_conference(org_id, conf_id, session)
    member = await get_conference_member(user_id, conf_id, session)
    if member is None:
        raise NotFound("You are not a member of this conference")

    async with atomic(session, "conference.leave"):
        await session.delete(member)
        await refresh_role_cache([user_id], session)

    log.info("conference.left", conference_id=str(conf_id), user_id=str(user_id))
