"""
Authentication endpoints.

- Email/password registration & login issuing bearer JWTs
- Logout by revoking the presented token's jti (Redis)
- The caller's profile with role projections, and self-service updates of
  name, email and password
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    create_jwt,
    get_identity,
    get_token_payload,
    revoke_jwt,
    verify_password,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Unauthenticated
from app.core.identity import IdentityClaims
from app.models.base import utcnow
from app.services import users as user_service
from confhub_shared.schemas.common import MessageResponse
from confhub_shared.schemas.users import (
    EmailUpdateRequest,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password."""
    user = await user_service.create_user(body.email, body.password, body.name, session)
    log.info("user.registered", user_id=str(user.id))
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a bearer JWT."""
    user = await user_service.find_user_by_email(body.email, session)

    if not user or not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", known_user=user is not None)
        raise Unauthenticated()

    user.last_login_at = utcnow()
    session.add(user)

    token, _jti = create_jwt(user.id, user.email)
    log.info("auth.login_success", user_id=str(user.id))
    return TokenResponse(access_token=token, expires_in=settings.jwt_expire_minutes * 60)


@router.post("/logout", response_model=MessageResponse)
async def logout(payload: dict = Depends(get_token_payload)):
    """Invalidate the presented token for the rest of its lifetime."""
    remaining = int(payload["exp"]) - int(time.time())
    await revoke_jwt(payload["jti"], ttl_seconds=max(remaining, 1))
    log.info("auth.logout", user_id=payload.get("sub"))
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def me(
    identity: IdentityClaims = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.get_user(identity.user_id, session)
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    identity: IdentityClaims = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.update_profile(identity.user_id, body.name, session)
    return UserResponse.model_validate(user)


@router.patch("/me/email", response_model=UserResponse)
async def update_my_email(
    body: EmailUpdateRequest,
    identity: IdentityClaims = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """Change the login email. The new address is unverified until confirmed."""
    user = await user_service.update_email(identity.user_id, body.new_email, session)
    return UserResponse.model_validate(user)


@router.patch("/me/password", response_model=MessageResponse)
async def change_my_password(
    body: PasswordChangeRequest,
    identity: IdentityClaims = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    await user_service.change_password(
        identity.user_id, body.old_password, body.new_password, session
    )
    return MessageResponse(message="Password changed")
