"""Organization model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(unique=True, nullable=False, index=True)
    description: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    plan: str = Field(default="free", nullable=False)
    is_public: bool = Field(default=False, nullable=False)
    settings: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    # Denormalized child list, kept in step with conferences.organization_id
    conference_ids: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
