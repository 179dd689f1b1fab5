"""
Tests for the tenant membership lifecycle.

Covers:
- Self-onboarding vs. administrator grants (create matrix)
- OWNER memberships are never removable or demotable
- Read/update/remove permissions
- Role projection on the user row follows every write
- Tenant slug conflicts, including one claimed concurrently
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlmodel import select

from app.core.errors import Conflict, Forbidden, NotFound
from app.models.membership import TenantMembership
from app.models.tenant import Tenant
from app.services import memberships as membership_service
from app.services.tenants import create_tenant
from confhub_shared.schemas.common import TenantRole
from confhub_shared.schemas.memberships import (
    MembershipCreateRequest,
    MembershipUpdateRequest,
    TenantCreateRequest,
)


@pytest.fixture
async def tenant_setup(session, make_user, identity_of):
    """A tenant with an OWNER, an ORGANIZER and a SUBMITTER."""
    owner = await make_user("owner")
    organizer = await make_user("organizer")
    submitter = await make_user("submitter")
    tenant = await create_tenant(
        TenantCreateRequest(name="DevConf", slug="devconf"), owner.id, session
    )
    await membership_service.create_membership(
        identity_of(owner),
        tenant.id,
        MembershipCreateRequest(user_id=organizer.id, role=TenantRole.ORGANIZER),
        session,
    )
    await membership_service.create_membership(
        identity_of(submitter),
        tenant.id,
        MembershipCreateRequest(user_id=submitter.id, role=TenantRole.SUBMITTER),
        session,
    )
    return {
        "tenant": tenant,
        "owner": owner,
        "organizer": organizer,
        "submitter": submitter,
    }


async def _rows(session, tenant_id, user_id) -> list[TenantMembership]:
    result = await session.execute(
        select(TenantMembership).where(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.user_id == user_id,
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateMembership:
    @pytest.mark.asyncio
    async def test_creator_is_owner(self, session, tenant_setup):
        owner, tenant = tenant_setup["owner"], tenant_setup["tenant"]
        rows = await _rows(session, tenant.id, owner.id)
        assert [r.role for r in rows] == [TenantRole.OWNER.value]
        assert owner.memberships == [{"tenant_id": str(tenant.id), "role": "OWNER"}]

    @pytest.mark.asyncio
    async def test_non_member_may_only_self_onboard_as_lowest_role(
        self, session, make_user, identity_of, tenant_setup
    ):
        tenant = tenant_setup["tenant"]
        someone_else = await make_user("someone")

        for role in TenantRole:
            for self_target in (True, False):
                actor = await make_user()
                target_id = actor.id if self_target else someone_else.id
                req = MembershipCreateRequest(user_id=target_id, role=role)
                allowed = self_target and role == TenantRole.SUBMITTER

                if allowed:
                    membership = await membership_service.create_membership(
                        identity_of(actor), tenant.id, req, session
                    )
                    assert membership.role == TenantRole.SUBMITTER.value
                else:
                    with pytest.raises(Forbidden):
                        await membership_service.create_membership(
                            identity_of(actor), tenant.id, req, session
                        )

        assert await _rows(session, tenant.id, someone_else.id) == []

    @pytest.mark.asyncio
    async def test_owner_role_never_granted(self, session, make_user, identity_of, tenant_setup):
        target = await make_user("target")
        with pytest.raises(Forbidden):
            await membership_service.create_membership(
                identity_of(tenant_setup["owner"]),
                tenant_setup["tenant"].id,
                MembershipCreateRequest(user_id=target.id, role=TenantRole.OWNER),
                session,
            )

    @pytest.mark.asyncio
    async def test_member_cannot_self_grant(self, session, identity_of, tenant_setup):
        submitter = tenant_setup["submitter"]
        with pytest.raises(Forbidden) as exc_info:
            await membership_service.create_membership(
                identity_of(submitter),
                tenant_setup["tenant"].id,
                MembershipCreateRequest(user_id=submitter.id, role=TenantRole.REVIEWER),
                session,
            )
        assert "already a member" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_submitter_cannot_add_others(self, session, make_user, identity_of, tenant_setup):
        target = await make_user("target")
        with pytest.raises(Forbidden):
            await membership_service.create_membership(
                identity_of(tenant_setup["submitter"]),
                tenant_setup["tenant"].id,
                MembershipCreateRequest(user_id=target.id, role=TenantRole.SUBMITTER),
                session,
            )

    @pytest.mark.asyncio
    async def test_organizer_adds_other_and_duplicate_conflicts(
        self, session, make_user, identity_of, tenant_setup
    ):
        tenant = tenant_setup["tenant"]
        target = await make_user("reviewer")
        req = MembershipCreateRequest(user_id=target.id, role=TenantRole.REVIEWER)

        await membership_service.create_membership(
            identity_of(tenant_setup["organizer"]), tenant.id, req, session
        )
        assert target.memberships == [{"tenant_id": str(tenant.id), "role": "REVIEWER"}]

        with pytest.raises(Conflict):
            await membership_service.create_membership(
                identity_of(tenant_setup["owner"]), tenant.id, req, session
            )
        assert len(await _rows(session, tenant.id, target.id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_target_user(self, session, identity_of, tenant_setup):
        with pytest.raises(NotFound):
            await membership_service.create_membership(
                identity_of(tenant_setup["owner"]),
                tenant_setup["tenant"].id,
                MembershipCreateRequest(user_id=uuid.uuid4(), role=TenantRole.REVIEWER),
                session,
            )


# ---------------------------------------------------------------------------
# Remove
# ---------------------------------------------------------------------------

class TestRemoveMembership:
    @pytest.mark.asyncio
    async def test_owner_never_removable(self, session, identity_of, tenant_setup):
        tenant, owner = tenant_setup["tenant"], tenant_setup["owner"]
        for actor in ("owner", "organizer", "submitter"):
            with pytest.raises(Forbidden):
                await membership_service.remove_membership(
                    identity_of(tenant_setup[actor]), tenant.id, owner.id, session
                )
        assert len(await _rows(session, tenant.id, owner.id)) == 1

    @pytest.mark.asyncio
    async def test_member_removes_self(self, session, identity_of, tenant_setup):
        tenant, submitter = tenant_setup["tenant"], tenant_setup["submitter"]
        await membership_service.remove_membership(
            identity_of(submitter), tenant.id, submitter.id, session
        )
        assert await _rows(session, tenant.id, submitter.id) == []
        assert submitter.memberships == []

    @pytest.mark.asyncio
    async def test_organizer_removes_other(self, session, identity_of, tenant_setup):
        tenant, submitter = tenant_setup["tenant"], tenant_setup["submitter"]
        await membership_service.remove_membership(
            identity_of(tenant_setup["organizer"]), tenant.id, submitter.id, session
        )
        assert await _rows(session, tenant.id, submitter.id) == []

    @pytest.mark.asyncio
    async def test_submitter_cannot_remove_other(self, session, identity_of, tenant_setup):
        tenant = tenant_setup["tenant"]
        with pytest.raises(Forbidden):
            await membership_service.remove_membership(
                identity_of(tenant_setup["submitter"]),
                tenant.id,
                tenant_setup["organizer"].id,
                session,
            )

    @pytest.mark.asyncio
    async def test_non_member_cannot_remove(self, session, make_user, identity_of, tenant_setup):
        outsider = await make_user("outsider")
        with pytest.raises(Forbidden) as exc_info:
            await membership_service.remove_membership(
                identity_of(outsider),
                tenant_setup["tenant"].id,
                tenant_setup["submitter"].id,
                session,
            )
        assert exc_info.value.reason == "NotAMember"


# ---------------------------------------------------------------------------
# Read / update
# ---------------------------------------------------------------------------

class TestReadAndUpdate:
    @pytest.mark.asyncio
    async def test_member_reads_own_but_not_others(self, session, identity_of, tenant_setup):
        tenant, submitter = tenant_setup["tenant"], tenant_setup["submitter"]
        own = await membership_service.get_membership(
            identity_of(submitter), tenant.id, submitter.id, session
        )
        assert own.role == TenantRole.SUBMITTER.value

        with pytest.raises(Forbidden):
            await membership_service.get_membership(
                identity_of(submitter), tenant.id, tenant_setup["owner"].id, session
            )

    @pytest.mark.asyncio
    async def test_list(self, session, tenant_setup):
        memberships = await membership_service.list_memberships(tenant_setup["tenant"].id, session)
        assert len(memberships) == 3

    @pytest.mark.asyncio
    async def test_organizer_changes_role(self, session, identity_of, tenant_setup):
        tenant, submitter = tenant_setup["tenant"], tenant_setup["submitter"]
        updated = await membership_service.update_membership(
            identity_of(tenant_setup["organizer"]),
            tenant.id,
            submitter.id,
            MembershipUpdateRequest(role=TenantRole.REVIEWER),
            session,
        )
        assert updated.role == TenantRole.REVIEWER.value
        assert submitter.memberships == [{"tenant_id": str(tenant.id), "role": "REVIEWER"}]

    @pytest.mark.asyncio
    async def test_cannot_grant_owner(self, session, identity_of, tenant_setup):
        with pytest.raises(Forbidden):
            await membership_service.update_membership(
                identity_of(tenant_setup["owner"]),
                tenant_setup["tenant"].id,
                tenant_setup["submitter"].id,
                MembershipUpdateRequest(role=TenantRole.OWNER),
                session,
            )

    @pytest.mark.asyncio
    async def test_owner_role_cannot_change(self, session, identity_of, tenant_setup):
        with pytest.raises(Conflict):
            await membership_service.update_membership(
                identity_of(tenant_setup["organizer"]),
                tenant_setup["tenant"].id,
                tenant_setup["owner"].id,
                MembershipUpdateRequest(role=TenantRole.SUBMITTER),
                session,
            )

    @pytest.mark.asyncio
    async def test_submitter_cannot_update(self, session, identity_of, tenant_setup):
        with pytest.raises(Forbidden):
            await membership_service.update_membership(
                identity_of(tenant_setup["submitter"]),
                tenant_setup["tenant"].id,
                tenant_setup["organizer"].id,
                MembershipUpdateRequest(role=TenantRole.REVIEWER),
                session,
            )


# ---------------------------------------------------------------------------
# Tenant creation
# ---------------------------------------------------------------------------

class TestCreateTenant:
    @pytest.mark.asyncio
    async def test_duplicate_slug(self, session, make_user):
        owner = await make_user("owner")
        owner_id = owner.id
        await create_tenant(TenantCreateRequest(name="Meetup", slug="meetup"), owner_id, session)
        with pytest.raises(Conflict):
            await create_tenant(TenantCreateRequest(name="Meetup", slug="meetup"), owner_id, session)

    @pytest.mark.asyncio
    async def test_slug_taken_concurrently(self, session, session_factory, make_user):
        """A slug claimed after the pre-check still ends as a conflict."""
        owner = await make_user("owner")
        owner_id = owner.id
        await create_tenant(TenantCreateRequest(name="Meetup", slug="meetup"), owner_id, session)

        with patch("app.services.tenants._slug_taken", AsyncMock(return_value=False)):
            with pytest.raises(Conflict):
                await create_tenant(
                    TenantCreateRequest(name="Meetup Two", slug="meetup"), owner_id, session
                )

        async with session_factory() as fresh:
            assert len((await fresh.execute(select(Tenant))).scalars().all()) == 1
            rows = (await fresh.execute(select(TenantMembership))).scalars().all()
            assert [r.user_id for r in rows] == [owner_id]
