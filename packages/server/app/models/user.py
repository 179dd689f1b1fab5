"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, UUIDMixin, utcnow


class User(UUIDMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # stored lower-cased
    name: str = Field(nullable=False)
    password_hash: str = Field(nullable=False)
    email_verified: bool = Field(default=False, nullable=False)

    # Read-only role projection rebuilt from the membership tables by
    # services.users.refresh_role_cache; never written anywhere else.
    organizations: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
    conferences: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
    memberships: list = Field(default_factory=list, sa_type=JSONType, nullable=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(),
    )
    last_login_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
