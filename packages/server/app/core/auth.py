"""
Authentication and authorization dependencies.

Supports:
- Password hashing (bcrypt) and generated one-time passwords
- JWT bearer tokens with a Redis revocation list
- The ``get_identity`` dependency producing an ``IdentityClaims`` snapshot
- ``require_roles(policy)`` dependencies that gate routes through the
  role authorization engine
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authz import Decision, DenyReason, Policy, authorize
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Forbidden, Unauthenticated
from app.core.identity import IdentityClaims
from app.core.redis import get_redis
from app.core.tenancy import ScopeIds, get_scope_ids
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


def generate_password() -> str:
    """Random password for users provisioned by invite acceptance."""
    return secrets.token_hex(settings.generated_password_bytes)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(f"jwt:revoked:{jti}", ttl_seconds, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def claims_for_user(user: User) -> IdentityClaims:
    """Identity snapshot from the user's stored role projection."""
    return IdentityClaims.from_projection(
        user_id=user.id,
        email=user.email,
        organizations=user.organizations,
        conferences=user.conferences,
        memberships=user.memberships,
    )


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Verified, non-revoked JWT payload of the bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated()
    try:
        payload = decode_jwt(credentials.credentials)
    except jwt.PyJWTError:
        raise Unauthenticated()

    jti = payload.get("jti")
    if not jti or await is_jwt_revoked(jti):
        raise Unauthenticated()
    return payload


async def get_identity(
    payload: dict = Depends(get_token_payload),
    session: AsyncSession = Depends(get_session),
) -> IdentityClaims:
    """Main authentication dependency: one user read per request."""
    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise Unauthenticated()

    user = await session.get(User, user_id)
    if user is None:
        raise Unauthenticated()
    return claims_for_user(user)


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RequestContext:
    """Immutable per-request authorization context handed to route handlers."""

    identity: IdentityClaims
    scope: ScopeIds


def enforce(
    policy: Optional[Policy], identity: Optional[IdentityClaims], scope: ScopeIds
) -> None:
    """Raise ``Forbidden`` unless the engine allows the call."""
    decision: Decision = authorize(policy, identity, scope)
    if decision.allowed:
        return
    if decision.reason == DenyReason.UNAUTHENTICATED:
        raise Unauthenticated()
    log.info(
        "authz.denied",
        user_id=str(identity.user_id),
        reason=decision.reason.value,
        org_id=str(scope.org_id) if scope.org_id else None,
        conf_id=str(scope.conf_id) if scope.conf_id else None,
        tenant_id=str(scope.tenant_id) if scope.tenant_id else None,
    )
    raise Forbidden(reason=decision.reason.value)


def require_roles(policy: Optional[Policy] = None):
    """Build a dependency that gates a route on ``policy``.

    ``None`` admits any authenticated caller.
    """

    async def dependency(
        identity: IdentityClaims = Depends(get_identity),
        scope: ScopeIds = Depends(get_scope_ids),
    ) -> RequestContext:
        enforce(policy, identity, scope)
        return RequestContext(identity=identity, scope=scope)

    dependency.policy = policy  # type: ignore[attr-defined]
    return dependency


require_authenticated = require_roles(None)
