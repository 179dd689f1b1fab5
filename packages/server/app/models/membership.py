"""Canonical membership tables (composite primary keys, one row per user and scope)."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class OrgMember(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_members"

    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    organization_id: uuid.UUID = Field(foreign_key="organizations.id", primary_key=True, index=True)
    role: str = Field(nullable=False)  # OrgRole value


class ConferenceMember(TimestampMixin, SQLModel, table=True):
    __tablename__ = "conference_members"

    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    conference_id: uuid.UUID = Field(foreign_key="conferences.id", primary_key=True, index=True)
    role: str = Field(nullable=False)  # ConferenceRole value


class TenantMembership(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenant_memberships"

    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", primary_key=True, index=True)
    role: str = Field(nullable=False)  # TenantRole value
