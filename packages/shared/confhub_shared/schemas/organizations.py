"""
Organization-related Pydantic schemas shared between server and clients.

Covers: Org CRUD request/response, OrgSettings, list items with the
caller's role.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl

from .common import OrgRole


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OrgPlan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# ---------------------------------------------------------------------------
# Org Settings
# ---------------------------------------------------------------------------

class CfpDefaults(BaseModel):
    review_rounds: int = Field(default=1, ge=1, le=5)
    anonymous_review: bool = Field(
        default=True,
        description="Hide speaker identity from reviewers",
    )


class OrgSettings(BaseModel):
    """Org-level settings. All fields optional with defaults."""

    cfp_defaults: CfpDefaults = Field(default_factory=CfpDefaults)
    default_timezone: str = Field(default="UTC", min_length=1, max_length=64)
    contact_email: Optional[str] = Field(
        default=None,
        description="Public contact address shown on conference pages",
    )


SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*[a-z0-9]$"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=SLUG_PATTERN,
        description="URL-safe org identifier",
    )
    description: Optional[str] = Field(None, max_length=2000)
    website: Optional[HttpUrl] = None
    logo: Optional[HttpUrl] = None
    plan: OrgPlan = OrgPlan.FREE
    is_public: bool = Field(False, description="Anyone may join as MEMBER")
    settings: Optional[dict] = None


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=2000)
    website: Optional[HttpUrl] = None
    logo: Optional[HttpUrl] = None
    plan: Optional[OrgPlan] = None
    is_public: Optional[bool] = None
    settings: Optional[dict] = Field(
        None,
        description="Partial settings update (deep-merged via JSON Merge Patch)",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    plan: OrgPlan
    is_public: bool
    settings: OrgSettings
    conference_ids: list[uuid.UUID] = []
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    is_public: bool
    role: Optional[OrgRole] = None  # the requesting user's role in this org

    model_config = {"from_attributes": True}


class OrgListResponse(BaseModel):
    data: list[OrgListItem]
