"""Conference model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Conference(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "conferences"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_conferences_org_name"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    slug: str = Field(nullable=False)
    description: Optional[str] = None
    details: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    cfp_open_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    cfp_close_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
