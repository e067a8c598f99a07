"""
Authentication for tenantdesk.

Supports:
- Email/Password login with bcrypt hashes
- JWT sessions carried as a bearer token or the ``td_session`` cookie
- JWT revocation list in Redis
- Invite and CSRF token generation

Identity resolution stops at the user id. Org membership and roles are
decided by ``tenantdesk.core.policy``.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from tenantdesk.core.config import get_settings
from tenantdesk.core.errors import Unauthorized
from tenantdesk.core.redis import get_redis, revoked_key

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "td_session"
CSRF_COOKIE = "td_csrf"

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
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

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_minutes * 60
    await redis.setex(revoked_key(jti), ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(revoked_key(jti)) > 0


# ---------------------------------------------------------------------------
# Random tokens
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def generate_invite_token() -> str:
    """64 hex characters (32 random bytes)."""
    return secrets.token_hex(32)


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------

def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE)


async def resolve_token(token: Optional[str]) -> uuid.UUID:
    """Turn a session credential into a user id, or raise Unauthorized."""
    if not token:
        raise Unauthorized("Authentication required")

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise Unauthorized("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise Unauthorized("Session has been revoked")

    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise Unauthorized("Invalid or expired session")


async def get_identity(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
) -> uuid.UUID:
    """FastAPI dependency: the caller's user id."""
    user_id = await resolve_token(extract_token(request, authorization))
    request.state.user_id = user_id
    return user_id
