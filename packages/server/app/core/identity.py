"""
Verified caller identity and its pre-fetched role memberships.

An ``IdentityClaims`` value is built once per request by the authenticator
and then only read. Lookups never touch the database.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from confhub_shared.schemas.common import ConferenceRole, OrgRole, TenantRole


@dataclass(frozen=True)
class IdentityClaims:
    user_id: uuid.UUID
    email: str
    organizations: dict[uuid.UUID, OrgRole] = field(default_factory=dict)
    conferences: dict[uuid.UUID, ConferenceRole] = field(default_factory=dict)
    memberships: dict[uuid.UUID, TenantRole] = field(default_factory=dict)

    def org_role(self, org_id: Optional[uuid.UUID]) -> Optional[OrgRole]:
        if org_id is None:
            return None
        return self.organizations.get(org_id)

    def conference_role(self, conf_id: Optional[uuid.UUID]) -> Optional[ConferenceRole]:
        if conf_id is None:
            return None
        return self.conferences.get(conf_id)

    def tenant_role(self, tenant_id: Optional[uuid.UUID]) -> Optional[TenantRole]:
        if tenant_id is None:
            return None
        return self.memberships.get(tenant_id)

    @classmethod
    def from_projection(
        cls,
        user_id: uuid.UUID,
        email: str,
        organizations: list[dict],
        conferences: list[dict],
        memberships: list[dict],
    ) -> "IdentityClaims":
        """Build claims from the role projection stored on the user row."""
        return cls(
            user_id=user_id,
            email=email,
            organizations={
                uuid.UUID(str(item["organization_id"])): OrgRole(item["role"])
                for item in organizations
            },
            conferences={
                uuid.UUID(str(item["conference_id"])): ConferenceRole(item["role"])
                for item in conferences
            },
            memberships={
                uuid.UUID(str(item["tenant_id"])): TenantRole(item["role"])
                for item in memberships
            },
        )
