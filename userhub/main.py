"""
UserHub Backend - FastAPI Application
Main entry point with all routes configured.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager

from userhub.config import settings
from userhub.database import Database
from userhub.core.errors import register_exception_handlers
from userhub.core.exceptions import ConfigurationError
from userhub.core.logging import RequestLoggingMiddleware, configure_logging
from userhub.schemas.common import HealthResponse
from userhub.services.email_service import EmailService, create_email_service
from userhub.services.upload_service import LocalUploadService
from userhub.services.rate_limiter import (
    AuthRateLimitMiddleware, RateLimiter, create_rate_limiter
)

# Import API routers
from userhub.api import auth, users

# Import models to ensure they are registered with SQLModel
from userhub.models import User, RefreshToken  # noqa: F401

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

RATE_LIMITED_PATHS = [
    f"{auth.router.prefix}/register",
    f"{auth.router.prefix}/login",
    f"{auth.router.prefix}/forgot-password",
    f"{auth.router.prefix}/reset-password",
    f"{auth.router.prefix}/resend-verification",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    if not settings.JWT_SECRET:
        raise ConfigurationError("JWT_SECRET is not defined")
    await app.state.db.init_models()
    logger.info(f"UserHub API started ({settings.ENVIRONMENT})")
    yield
    # Shutdown
    if app.state.rate_limiter is not None:
        await app.state.rate_limiter.close()
    await app.state.db.dispose()
    logger.info("UserHub API stopped")


def create_app(
    database: Optional[Database] = None,
    email_service: Optional[EmailService] = None,
    upload_service: Optional[LocalUploadService] = None,
    rate_limiter: Optional[RateLimiter] = None
) -> FastAPI:
    """
    Build the application. Collaborators not passed in are created from
    settings; tests pass their own.
    """
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="UserHub API",
        description="User accounts, authentication and profile management",
        version=VERSION,
        lifespan=lifespan
    )

    app.state.db = database or Database()
    app.state.email_service = email_service or create_email_service()
    app.state.upload_service = upload_service or LocalUploadService()
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else create_rate_limiter()
    app.state.started_at = time.monotonic()

    # Middleware added last runs first
    if app.state.rate_limiter is not None:
        app.add_middleware(
            AuthRateLimitMiddleware,
            limiter=app.state.rate_limiter,
            paths=RATE_LIMITED_PATHS
        )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)

    app.mount(
        app.state.upload_service.url_prefix,
        StaticFiles(directory=str(app.state.upload_service.upload_path)),
        name="uploads"
    )

    @app.get("/")
    async def root():
        return {
            "message": "UserHub API is running",
            "version": VERSION,
            "docs": "/docs"
        }

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Liveness check."""
        return HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime=round(time.monotonic() - app.state.started_at, 3)
        )

    return app


app = create_app()
