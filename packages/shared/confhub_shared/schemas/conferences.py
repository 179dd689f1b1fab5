"""Conference request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .organizations import SLUG_PATTERN


class ConferenceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=5000)
    details: dict = Field(default_factory=dict, description="Free-form conference metadata")
    cfp_open_date: Optional[datetime] = None
    cfp_close_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_cfp_window(self) -> "ConferenceCreateRequest":
        if self.cfp_open_date and self.cfp_close_date and self.cfp_close_date <= self.cfp_open_date:
            raise ValueError("cfp_close_date must be after cfp_open_date")
        return self


class ConferenceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=5000)
    details: Optional[dict] = None
    cfp_open_date: Optional[datetime] = None
    cfp_close_date: Optional[datetime] = None


class ConferenceResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    details: dict = {}
    cfp_open_date: Optional[datetime] = None
    cfp_close_date: Optional[datetime] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConferenceListResponse(BaseModel):
    data: list[ConferenceResponse]
