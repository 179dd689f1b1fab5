"""
Tests for the shared request/response schemas and role helpers.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from confhub_shared.schemas.common import (
    ConferenceRole,
    OrgRole,
    implied_conference_role,
)
from confhub_shared.schemas.conferences import ConferenceCreateRequest
from confhub_shared.schemas.invites import InviteCreateRequest, InviteResponse, InviteSummary
from confhub_shared.schemas.organizations import OrgCreateRequest, OrgSettings


class TestRoles:
    def test_implied_conference_roles(self):
        assert implied_conference_role(OrgRole.OWNER) is ConferenceRole.OWNER
        assert implied_conference_role(OrgRole.ADMIN) is ConferenceRole.ADMIN
        assert implied_conference_role(OrgRole.MEMBER) is None
        assert implied_conference_role(None) is None


class TestOrgSchemas:
    def test_settings_defaults(self):
        s = OrgSettings()
        assert s.cfp_defaults.review_rounds == 1
        assert s.cfp_defaults.anonymous_review is True
        assert s.default_timezone == "UTC"

    @pytest.mark.parametrize("slug", ["A-Org", "-org", "org-", "x", "has space"])
    def test_bad_slugs(self, slug):
        with pytest.raises(ValidationError):
            OrgCreateRequest(name="Org", slug=slug)

    def test_good_slug(self):
        assert OrgCreateRequest(name="Org", slug="py-con-2026").slug == "py-con-2026"


class TestConferenceSchemas:
    def test_cfp_window_must_be_ordered(self):
        with pytest.raises(ValidationError):
            ConferenceCreateRequest(
                name="C",
                slug="cc",
                cfp_open_date=datetime(2026, 5, 1),
                cfp_close_date=datetime(2026, 4, 1),
            )


class TestInviteSchemas:
    def test_roles_parse_by_value(self):
        req = InviteCreateRequest(email="a@example.com", org_role="ADMIN", conf_role="REVIEWER")
        assert req.org_role is OrgRole.ADMIN
        assert req.conf_role is ConferenceRole.REVIEWER

    def test_conference_role_not_accepted_as_org_role(self):
        with pytest.raises(ValidationError):
            InviteCreateRequest(email="a@example.com", org_role="REVIEWER")

    def test_summary_has_no_token(self):
        assert "token" not in InviteSummary.model_fields
        assert "token" in InviteResponse.model_fields
