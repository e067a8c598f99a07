"""
tenantdesk API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tenantdesk.core.config import get_settings
from tenantdesk.core.database import engine
from tenantdesk.core.errors import register_exception_handlers
from tenantdesk.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from tenantdesk.core.redis import close_redis, ping_redis
from tenantdesk.api.v1 import router as api_v1_router
from tenantdesk.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


async def ping_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        return False
    return True


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="tenantdesk",
        description="Multi-tenant project management: orgs, teams, projects, tasks.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    register_exception_handlers(app)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    # Auth routes (not org-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness: database and Redis both answer."""
        checks = {"database": await ping_database(), "redis": await ping_redis()}
        if all(checks.values()):
            return {"status": "ready"}
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": checks})

    @app.on_event("startup")
    async def on_startup():
        log.info("tenantdesk.starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("tenantdesk.shutting_down")
        await close_redis()

    return app


app = create_app()
