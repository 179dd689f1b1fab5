"""
Shared fixtures: a per-test SQLite database, user factories and an API client.

Environment defaults are set before anything under ``app`` is imported so
the module-level settings pick them up.
"""

from __future__ import annotations

import os

os.environ.setdefault("CONFHUB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CONFHUB_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("CONFHUB_BCRYPT_ROUNDS", "4")
os.environ.setdefault("CONFHUB_LOG_FORMAT", "console")

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import claims_for_user, create_jwt
from app.core.database import get_session
from app.core.identity import IdentityClaims
from app.main import app
from app.models.user import User
from app.services.users import create_user

PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'confhub.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(session):
    """Factory: ``await make_user("alice")`` creates alice@example.com."""
    counter = {"n": 0}

    async def _make(name: str | None = None) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        user = await create_user(f"{name}@example.com", PASSWORD, name.title(), session)
        await session.commit()
        return user

    return _make


@pytest.fixture
def identity_of():
    """Identity snapshot from a user's current role projection."""

    def _identity(user: User) -> IdentityClaims:
        return claims_for_user(user)

    return _identity


@pytest.fixture
def auth_headers():
    """Bearer JWT headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token, _jti = create_jwt(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    """ASGI client bound to the test database; JWT revocation never hits Redis."""

    async def _session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    with patch("app.core.auth.is_jwt_revoked", AsyncMock(return_value=False)):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()
