"""Tenant model (flat single-scope variant)."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Tenant(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    name: str = Field(nullable=False)
    slug: str = Field(unique=True, nullable=False, index=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
