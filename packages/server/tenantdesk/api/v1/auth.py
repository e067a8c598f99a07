"""
Authentication endpoints.

- Email/Password registration & login
- JWT session (cookie for browsers, bearer token for API clients)
- Logout with server-side revocation
- Forgot-password request that never reveals whether an email is registered
"""

from __future__ import annotations

import uuid
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    authorization_header,
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    get_identity,
    hash_password,
    revoke_jwt,
    verify_password,
)
from tenantdesk.core.config import get_settings
from tenantdesk.core.database import flush_unique, get_session
from tenantdesk.core.errors import Conflict, Unauthorized
from tenantdesk.models.user import User
from tenantdesk_shared.schemas.common import UserSummary

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset link has been sent."


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, httponly=True, **COOKIE_KWARGS)
    # JS must read the CSRF cookie to echo it back
    response.set_cookie(key=CSRF_COOKIE, value=csrf, httponly=False, **COOKIE_KWARGS)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class AuthResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    message: str
    token: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Email/Password
# ---------------------------------------------------------------------------

async def _find_user(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user. Org membership comes from creating or joining an org."""
    email = str(body.email).lower()
    if await _find_user(session, email):
        raise Conflict("Email already registered")

    user = User(email=email, name=body.name.strip(), password_hash=hash_password(body.password))
    session.add(user)
    await flush_unique(session, Conflict("Email already registered"))

    log.info("user.registered", user_id=str(user.id))
    return AuthResponse(user_id=user.id, email=user.email, message="Registration successful")


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    user = await _find_user(session, str(body.email))

    if not user or not user.password_hash:
        log.warning("auth.login_failure", reason="unknown_user")
        raise Unauthorized("Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise Unauthorized("Invalid email or password")

    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())

    log.info("auth.login_success", user_id=str(user.id))
    return AuthResponse(user_id=user.id, email=user.email, message="Login successful", token=token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    """Same answer whether or not the email is registered."""
    user = await _find_user(session, str(body.email))
    if user:
        # TODO: hand off to the mail sender once one is configured
        log.info("auth.password_reset_requested", user_id=str(user.id))
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.get("/me", response_model=UserSummary)
async def me(
    user_id: uuid.UUID = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    user = await session.get(User, user_id)
    if not user:
        raise Unauthorized("User not found")
    return UserSummary.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    authorization: Optional[str] = Depends(authorization_header),
):
    """Invalidate the current session."""
    token = extract_token(request, authorization)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            log.info("auth.logout_invalid_token")
        else:
            if payload.get("jti"):
                await revoke_jwt(payload["jti"])

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return MessageResponse(message="Logged out")
