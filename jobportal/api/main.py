"""
JOBPORTAL API - Main Application Entry Point

FastAPI backend exposing the identity and audit core of the job portal.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobportal.api.access.audit import AuditRecorder
from jobportal.api.access.guard import AccessGuard
from jobportal.api.access.store import SqlAlchemyAuditStore
from jobportal.api.auth.jwt import TokenService
from jobportal.api.config import Settings, settings
from jobportal.api.db.session import close_db, configure_db, init_db
from jobportal.api.exceptions import AccessError


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await init_db(app.state.settings)
    yield
    # Shutdown
    await app.state.audit_recorder.drain()
    await close_db()


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """Map access failures to 401/403 without internal detail."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else is a 500 with no internal detail."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Raises:
        ConfigurationError: If the JWT signing secret is missing
    """
    app_settings = app_settings or settings
    setup_logging(app_settings.LOG_LEVEL)

    # Fails fast: no signing secret, no app
    token_service = TokenService.from_settings(app_settings)

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description="JOBPORTAL - identity and audit API",
        docs_url="/api/docs" if app_settings.DEBUG else None,
        redoc_url="/api/redoc" if app_settings.DEBUG else None,
        lifespan=lifespan,
    )

    session_maker = configure_db(app_settings)
    audit_store = SqlAlchemyAuditStore(session_maker)

    app.state.settings = app_settings
    app.state.token_service = token_service
    app.state.access_guard = AccessGuard(token_service, cookie_name=app_settings.AUTH_COOKIE_NAME)
    app.state.audit_store = audit_store
    app.state.audit_recorder = AuditRecorder(
        audit_store, write_timeout=app_settings.AUDIT_WRITE_TIMEOUT_SECONDS
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    from jobportal.api.auth.routes import router as auth_router
    from jobportal.api.admin.routes import router as admin_router

    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])

    # Health check endpoint
    @app.get("/api/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "version": app_settings.APP_VERSION,
            "service": app_settings.APP_NAME,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "jobportal.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
