"""User and authentication schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .common import ConferenceRole, OrgRole, TenantRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class EmailUpdateRequest(BaseModel):
    new_email: EmailStr


class PasswordChangeRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=8, max_length=128)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgMembershipItem(BaseModel):
    organization_id: uuid.UUID
    role: OrgRole


class ConferenceMembershipItem(BaseModel):
    conference_id: uuid.UUID
    role: ConferenceRole


class TenantMembershipItem(BaseModel):
    tenant_id: uuid.UUID
    role: TenantRole


class UserResponse(BaseModel):
    """A user with the role projection used for authorization."""
    id: uuid.UUID
    email: str
    name: str
    email_verified: bool
    organizations: List[OrgMembershipItem] = []
    conferences: List[ConferenceMembershipItem] = []
    memberships: List[TenantMembershipItem] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
