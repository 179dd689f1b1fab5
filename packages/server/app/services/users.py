"""
User service — account lookup/creation and the role projection cache.

The ``organizations``/``conferences``/``memberships`` arrays on a user row
are rebuilt from the canonical membership tables by ``refresh_role_cache``.
Every service that writes a membership row calls it inside the same
transaction, so the projection and the tables commit or roll back together.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password, verify_password
from app.core.database import insert_ignore
from app.core.errors import BadRequest, Conflict, NotFound
from app.models.membership import ConferenceMember, OrgMember, TenantMembership
from app.models.user import User

log = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> User:
    """Get a user by id; raises 404 if missing."""
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def find_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def create_user(
    email: str,
    password: str,
    name: str,
    session: AsyncSession,
    *,
    email_verified: bool = False,
) -> User:
    """Create a user. Email uniqueness is case-insensitive."""
    if await find_user_by_email(email, session):
        raise Conflict("User with this email already exists")

    user = User(
        email=normalize_email(email),
        name=name,
        password_hash=hash_password(password),
        email_verified=email_verified,
    )
    session.add(user)
    await session.flush()
    log.info("user.created", user_id=str(user.id), email_verified=email_verified)
    return user


async def provision_user(
    email: str,
    password: str,
    name: str,
    session: AsyncSession,
    *,
    email_verified: bool = False,
) -> tuple[User, bool]:
    """Get-or-create by email; returns the user and whether this call created it.

    The insert is insert-ignore on the unique email, so two transactions
    provisioning the same address both end up with the one committed row.
    """
    created = await insert_ignore(
        session,
        User,
        email=normalize_email(email),
        name=name,
        password_hash=hash_password(password),
        email_verified=email_verified,
    )
    user = await find_user_by_email(email, session)
    if user is None:
        raise NotFound("User not found")
    if created:
        log.info("user.created", user_id=str(user.id), email_verified=email_verified)
    return user, created


async def update_profile(user_id: uuid.UUID, name: Optional[str], session: AsyncSession) -> User:
    user = await get_user(user_id, session)
    if name is not None:
        user.name = name
    session.add(user)
    await session.flush()
    return user


async def update_email(user_id: uuid.UUID, new_email: str, session: AsyncSession) -> User:
    """Change the login email; the new address starts unverified."""
    user = await get_user(user_id, session)
    email = normalize_email(new_email)
    if email == user.email:
        raise BadRequest("New email is the same as the current email")
    if await find_user_by_email(email, session):
        raise Conflict("User with this email already exists")

    user.email = email
    user.email_verified = False
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("User with this email already exists")
    log.info("user.email_changed", user_id=str(user.id))
    return user


async def change_password(
    user_id: uuid.UUID, old_password: str, new_password: str, session: AsyncSession
) -> None:
    user = await get_user(user_id, session)
    if not verify_password(old_password, user.password_hash):
        raise BadRequest("Invalid old password")
    user.password_hash = hash_password(new_password)
    session.add(user)
    await session.flush()
    log.info("user.password_changed", user_id=str(user.id))


async def refresh_role_cache(user_ids: Iterable[uuid.UUID], session: AsyncSession) -> None:
    """Rebuild the role projection of each user from the membership tables."""
    ids = set(user_ids)
    if not ids:
        return
    await session.flush()

    orgs: dict[uuid.UUID, list[dict]] = {uid: [] for uid in ids}
    confs: dict[uuid.UUID, list[dict]] = {uid: [] for uid in ids}
    tenants: dict[uuid.UUID, list[dict]] = {uid: [] for uid in ids}

    rows = await session.execute(select(OrgMember).where(OrgMember.user_id.in_(ids)))
    for m in rows.scalars().all():
        orgs[m.user_id].append({"organization_id": str(m.organization_id), "role": m.role})

    rows = await session.execute(
        select(ConferenceMember).where(ConferenceMember.user_id.in_(ids))
    )
    for m in rows.scalars().all():
        confs[m.user_id].append({"conference_id": str(m.conference_id), "role": m.role})

    rows = await session.execute(
        select(TenantMembership).where(TenantMembership.user_id.in_(ids))
    )
    for m in rows.scalars().all():
        tenants[m.user_id].append({"tenant_id": str(m.tenant_id), "role": m.role})

    users = await session.execute(select(User).where(User.id.in_(ids)))
    for user in users.scalars().all():
        # Reassign (not mutate) so the JSON columns are marked dirty
        user.organizations = sorted(orgs[user.id], key=lambda i: i["organization_id"])
        user.conferences = sorted(confs[user.id], key=lambda i: i["conference_id"])
        user.memberships = sorted(tenants[user.id], key=lambda i: i["tenant_id"])
        session.add(user)
    await session.flush()
