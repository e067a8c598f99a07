"""
Security middleware: CSRF protection and security headers.
"""

from __future__ import annotations

import secrets

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tenantdesk.core.auth import CSRF_COOKIE, SESSION_COOKIE
from tenantdesk.core.errors import TenantDeskError

log = structlog.get_logger()

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

# Credential-issuing endpoints; a stale cookie must not block a fresh login.
CSRF_EXEMPT_PATHS = {"/auth/login", "/auth/register", "/auth/forgot-password"}

# ---------------------------------------------------------------------------
# Security Headers
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://fastapi.tiangolo.com; "
        "frame-ancestors 'none';"
    ),
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


# ---------------------------------------------------------------------------
# CSRF Protection (Double-Submit Cookie)
# ---------------------------------------------------------------------------

class CSRFRejected(TenantDeskError):
    code = "CSRF_VALIDATION_FAILED"
    status_code = 403
    default_message = "Invalid or missing CSRF token."


def _needs_csrf_check(request: Request) -> bool:
    if request.method in SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
        return False
    # Bearer requests carry no ambient credential
    if request.headers.get("Authorization"):
        return False
    return SESSION_COOKIE in request.cookies


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie CSRF protection.

    Unsafe requests authenticated by the ``td_session`` cookie must echo the
    ``td_csrf`` cookie in the ``X-CSRF-Token`` header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if not _needs_csrf_check(request):
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE) or ""
        header_token = request.headers.get("X-CSRF-Token") or ""

        if not cookie_token or not secrets.compare_digest(cookie_token, header_token):
            log.info("csrf.rejected", path=request.url.path, method=request.method)
            exc = CSRFRejected()
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        return await call_next(request)
