"""Role enumerations and small shared models.

Organization, conference and tenant roles are three closed sets. They are
plain ``Enum`` classes (no ``str`` mixin) so a member of one set never
compares equal to a member of another, or to a bare string.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OrgRole(Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class ConferenceRole(Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    ORGANIZER = "ORGANIZER"
    REVIEWER = "REVIEWER"
    SPEAKER = "SPEAKER"


class TenantRole(Enum):
    OWNER = "OWNER"
    ORGANIZER = "ORGANIZER"
    REVIEWER = "REVIEWER"
    SUBMITTER = "SUBMITTER"


# Lowest-privilege role per scope kind (self-onboarding, public join, default invite)
LOWEST_ORG_ROLE = OrgRole.MEMBER
LOWEST_CONFERENCE_ROLE = ConferenceRole.SPEAKER
LOWEST_TENANT_ROLE = TenantRole.SUBMITTER

# Roles allowed to manage other users' tenant memberships
TENANT_MANAGER_ROLES: frozenset[TenantRole] = frozenset(
    {TenantRole.OWNER, TenantRole.ORGANIZER}
)

# Org-wide administrators are mirrored onto every conference of the org
_IMPLIED_CONFERENCE_ROLES: dict[OrgRole, ConferenceRole] = {
    OrgRole.OWNER: ConferenceRole.OWNER,
    OrgRole.ADMIN: ConferenceRole.ADMIN,
}


def implied_conference_role(org_role: Optional[OrgRole]) -> Optional[ConferenceRole]:
    """Conference role an org role carries over to the org's conferences, if any."""
    if org_role is None:
        return None
    return _IMPLIED_CONFERENCE_ROLES.get(org_role)


class MessageResponse(BaseModel):
    message: str
