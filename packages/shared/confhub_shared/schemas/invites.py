"""Invite schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from .common import ConferenceRole, OrgRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class InviteCreateRequest(BaseModel):
    """Invite an email address into an organization, optionally a conference."""
    email: EmailStr
    org_role: Optional[OrgRole] = None
    conf_role: Optional[ConferenceRole] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class InviteSummary(BaseModel):
    """Invite as listed to administrators. The token is never included."""
    id: uuid.UUID
    email: str
    organization_id: Optional[uuid.UUID] = None
    conference_id: Optional[uuid.UUID] = None
    org_role: Optional[OrgRole] = None
    conf_role: Optional[ConferenceRole] = None
    invited_by: uuid.UUID
    created_at: datetime
    expires_at: datetime

    model_config = {"from_attributes": True}


class InviteResponse(InviteSummary):
    """Returned once, to the inviter, on creation."""
    token: str


class InviteListResponse(BaseModel):
    data: list[InviteSummary]


class InviteAcceptResponse(BaseModel):
    message: str
    user_id: uuid.UUID
    generated_password: Optional[str] = None  # Only for newly provisioned users, shown ONCE
