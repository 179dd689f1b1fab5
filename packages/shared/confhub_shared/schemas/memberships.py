"""Tenant and tenant-membership schemas (flat single-tenant variant)."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from .common import TenantRole
from .organizations import SLUG_PATTERN


class TenantCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=2, max_length=50, pattern=SLUG_PATTERN)


class TenantResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    created_by: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipCreateRequest(BaseModel):
    user_id: uuid.UUID
    role: TenantRole


class MembershipUpdateRequest(BaseModel):
    role: TenantRole


class MembershipResponse(BaseModel):
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    role: TenantRole
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MembershipListResponse(BaseModel):
    data: list[MembershipResponse]
