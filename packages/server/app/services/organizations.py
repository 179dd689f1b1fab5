"""
Organization service — business logic for org CRUD, the deletion cascade
and public join/leave.
"""

from __future__ import annotations

import uuid

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import atomic, insert_ignore
from app.core.errors import BadRequest, Conflict, Forbidden, NotFound
from app.models.conference import Conference
from app.models.invite import Invite
from app.models.membership import ConferenceMember, OrgMember
from app.models.organization import Organization
from app.services.users import get_user, refresh_role_cache
from confhub_shared.schemas.common import LOWEST_ORG_ROLE, OrgRole
from confhub_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgSettings,
    OrgUpdateRequest,
)

log = structlog.get_logger()

SLUG_TAKEN = "Org slug already taken"


def _deep_merge(base: dict, patch: dict) -> dict:
    """JSON Merge Patch style deep merge."""
    result = base.copy()
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        elif value is None:
            result.pop(key, None)
        else:
            result[key] = value
    return result


def _validated_settings(raw: dict) -> dict:
    try:
        return OrgSettings.model_validate(raw).model_dump(mode="json")
    except ValidationError as exc:
        raise BadRequest(f"Invalid organization settings: {exc.error_count()} error(s)")


async def _slug_taken(slug: str, session: AsyncSession) -> bool:
    result = await session.execute(select(Organization.id).where(Organization.slug == slug))
    return result.first() is not None


async def get_org_member(
    user_id: uuid.UUID, org_id: uuid.UUID, session: AsyncSession
) -> OrgMember | None:
    result = await session.execute(
        select(OrgMember).where(
            OrgMember.user_id == user_id, OrgMember.organization_id == org_id
        )
    )
    return result.scalar_one_or_none()


async def conference_ids_of(org_id: uuid.UUID, session: AsyncSession) -> list[uuid.UUID]:
    result = await session.execute(
        select(Conference.id).where(Conference.organization_id == org_id)
    )
    return list(result.scalars().all())


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List all orgs a user belongs to, with their role."""
    result = await session.execute(
        select(Organization, OrgMember.role)
        .join(OrgMember, OrgMember.organization_id == Organization.id)
        .where(OrgMember.user_id == user_id)
        .order_by(Organization.name)
    )
    return [
        {
            "id": org.id,
            "name": org.name,
            "slug": org.slug,
            "is_public": org.is_public,
            "role": OrgRole(role),
        }
        for org, role in result.all()
    ]


async def list_public_orgs(session: AsyncSession) -> list[Organization]:
    result = await session.execute(
        select(Organization).where(Organization.is_public.is_(True)).order_by(Organization.name)
    )
    return list(result.scalars().all())


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its OWNER, atomically."""
    settings = _validated_settings(req.settings or {})

    async with atomic(session, "org.create"):
        await get_user(creator_id, session)

        if await _slug_taken(req.slug, session):
            raise Conflict(SLUG_TAKEN)

        org = Organization(
            name=req.name,
            slug=req.slug,
            description=req.description,
            website=str(req.website) if req.website else None,
            logo=str(req.logo) if req.logo else None,
            plan=req.plan.value,
            is_public=req.is_public,
            settings=settings,
            created_by=creator_id,
        )
        session.add(org)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(SLUG_TAKEN)

        session.add(
            OrgMember(
                user_id=creator_id,
                organization_id=org.id,
                role=OrgRole.OWNER.value,
            )
        )
        await refresh_role_cache([creator_id], session)

    log.info("org.created", org_id=str(org.id), slug=req.slug, creator=str(creator_id))
    return org


async def get_org(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    """Get an org by id; raises 404 if not found."""
    org = await session.get(Organization, org_id)
    if org is None:
        raise NotFound("Organization not found")
    return org


async def get_org_by_slug(slug: str, session: AsyncSession) -> Organization:
    """Get an org by slug; raises 404 if not found."""
    result = await session.execute(select(Organization).where(Organization.slug == slug))
    org = result.scalar_one_or_none()
    if org is None:
        raise NotFound("Organization not found")
    return org


async def update_org(
    org_id: uuid.UUID,
    req: OrgUpdateRequest,
    session: AsyncSession,
) -> Organization:
    """Update org fields; settings are deep-merged and re-validated."""
    org = await get_org(org_id, session)

    async with atomic(session, "org.update"):
        if req.slug is not None and req.slug != org.slug:
            if await _slug_taken(req.slug, session):
                raise Conflict(SLUG_TAKEN)
            org.slug = req.slug

        if req.name is not None:
            org.name = req.name
        if req.description is not None:
            org.description = req.description
        if req.website is not None:
            org.website = str(req.website)
        if req.logo is not None:
            org.logo = str(req.logo)
        if req.plan is not None:
            org.plan = req.plan.value
        if req.is_public is not None:
            org.is_public = req.is_public
        if req.settings is not None:
            org.settings = _validated_settings(_deep_merge(org.settings, req.settings))

        session.add(org)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict(SLUG_TAKEN)

    log.info("org.updated", org_id=str(org.id), slug=org.slug)
    return org


async def delete_org(
    actor_id: uuid.UUID, org_id: uuid.UUID, session: AsyncSession
) -> None:
    """Delete an org with its conferences, invites and every membership
    referencing either. All of it commits or none of it does."""
    org = await get_org(org_id, session)

    async with atomic(session, "org.delete"):
        conf_ids = await conference_ids_of(org_id, session)

        org_users = await session.execute(
            select(OrgMember.user_id).where(OrgMember.organization_id == org_id)
        )
        conf_users = await session.execute(
            select(ConferenceMember.user_id).where(ConferenceMember.conference_id.in_(conf_ids))
        )
        affected = set(org_users.scalars().all()) | set(conf_users.scalars().all())

        await session.execute(
            delete(ConferenceMember).where(ConferenceMember.conference_id.in_(conf_ids))
        )
        await session.execute(
            delete(Invite).where(
                or_(Invite.organization_id == org_id, Invite.conference_id.in_(conf_ids))
            )
        )
        await session.execute(delete(Conference).where(Conference.organization_id == org_id))
        await session.execute(delete(OrgMember).where(OrgMember.organization_id == org_id))
        await session.delete(org)
        await refresh_role_cache(affected, session)

    log.info(
        "org.deleted",
        org_id=str(org_id),
        actor=str(actor_id),
        conferences=len(conf_ids),
        affected_users=len(affected),
    )


async def join_public_org(
    user_id: uuid.UUID, org_id: uuid.UUID, session: AsyncSession
) -> OrgMember:
    """Join a publicly-joinable org with the lowest role."""
    org = await get_org(org_id, session)
    if not org.is_public:
        raise Forbidden(detail="This organization is private. You need to be invited to join.")
    if await get_org_member(user_id, org_id, session):
        raise Conflict("You are already a member of this organization")

    async with atomic(session, "org.join"):
        await insert_ignore(
            session,
            OrgMember,
            user_id=user_id,
            organization_id=org_id,
            role=LOWEST_ORG_ROLE.value,
        )
        await refresh_role_cache([user_id], session)

    log.info("org.joined", org_id=str(org_id), user_id=str(user_id))
    return await get_org_member(user_id, org_id, session)


async def leave_org(
    user_id: uuid.UUID, org_id: uuid.UUID, session: AsyncSession
) -> None:
    """Leave an org, dropping every conference membership under it too."""
    await get_org(org_id, session)
    member = await get_org_member(user_id, org_id, session)
    if member is None:
        raise NotFound("You are not a member of this organization")
    if member.role == OrgRole.OWNER.value:
        raise Conflict("The organization owner cannot leave")

    async with atomic(session, "org.leave"):
        conf_ids = await conference_ids_of(org_id, session)
        await session.execute(
            delete(ConferenceMember).where(
                ConferenceMember.user_id == user_id,
                ConferenceMember.conference_id.in_(conf_ids),
            )
        )
        await session.delete(member)
        await refresh_role_cache([user_id], session)

    log.info("org.left", org_id=str(org_id), user_id=str(user_id), conferences=len(conf_ids))
