"""
Error taxonomy for the access-control layer and the HTTP mapping for it.

Every denial is raised as a ``TenantDeskError`` subclass and converted to a
JSON body of the form ``{"error": {"code", "message", "status"}}`` by the
handlers registered in ``register_exception_handlers``. The status codes are
chosen to avoid leaking existence across tenants:

- a non-member of an org gets 403 ``ACCESS_DENIED`` whether or not the org exists;
- a member asking for an entity of another org gets 404 ``NOT_FOUND``.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.responses import JSONResponse

log = structlog.get_logger()


class TenantDeskError(Exception):
    """Base class for all domain errors surfaced to API callers."""

    code = "ERROR"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status_code,
            }
        }


class Unauthorized(TenantDeskError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class AccessDenied(TenantDeskError):
    """Caller is not a member of the target org."""

    code = "ACCESS_DENIED"
    status_code = 403
    default_message = "Access denied"


class InsufficientPermissions(TenantDeskError):
    """Caller is a member, but their role is not in the allowed set."""

    code = "INSUFFICIENT_PERMISSIONS"
    status_code = 403
    default_message = "Insufficient permissions"


class NotFound(TenantDeskError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class ValidationError(TenantDeskError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class Conflict(ValidationError):
    """Duplicate unique key: team name, membership, pending invite."""

    code = "CONFLICT"
    status_code = 409
    default_message = "Already exists"


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

async def tenantdesk_error_handler(request: Request, exc: TenantDeskError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    body = ValidationError("Invalid request").to_dict()
    body["error"]["details"] = jsonable_encoder(exc.errors())
    log.info("request.invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content=body)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique violations that escaped a service-level check, e.g. at commit."""
    log.warning("db.integrity_error", path=request.url.path, detail=str(exc.orig))
    return JSONResponse(status_code=Conflict.status_code, content=Conflict().to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenantDeskError, tenantdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
