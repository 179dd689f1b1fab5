"""Invite model: a single-use token pre-authorizing a membership grant."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class Invite(UUIDMixin, SQLModel, table=True):
    __tablename__ = "invites"
    # At most one invite row per (email, organization, conference). NULL
    # conference ids never collide in a unique index, so org-only invites
    # get their own partial index.
    __table_args__ = (
        sa.Index(
            "uq_invites_email_org_conf",
            "email",
            "organization_id",
            "conference_id",
            unique=True,
            postgresql_where=sa.text("conference_id IS NOT NULL"),
            sqlite_where=sa.text("conference_id IS NOT NULL"),
        ),
        sa.Index(
            "uq_invites_email_org",
            "email",
            "organization_id",
            unique=True,
            postgresql_where=sa.text("conference_id IS NULL"),
            sqlite_where=sa.text("conference_id IS NULL"),
        ),
    )

    token: str = Field(unique=True, nullable=False, index=True)  # hex, 32 random bytes
    email: str = Field(nullable=False)  # lower-cased
    organization_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organizations.id")
    conference_id: Optional[uuid.UUID] = Field(default=None, foreign_key="conferences.id")
    org_role: Optional[str] = None
    conf_role: Optional[str] = None
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(),
    )
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(), index=True)
