"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from backend.core.config import Settings
from backend.core.middleware import setup_middleware
from backend.core.rate_limiter import configure_limiter
from backend.core.exceptions import SarahaError
from backend.db.base import Base
from backend.db.session import build_engine, build_session_factory
from backend.services.email_service import EmailService
from backend.services.identity_service import GoogleIdentityProvider
from backend.services.storage_service import AvatarStorage

from backend.api.auth import router as auth_router
from backend.api.users import router as users_router
from backend.api.messages import router as messages_router

import backend.models  # noqa: F401  (register tables on Base.metadata)

logger = logging.getLogger("saraha")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings: Settings = app.state.settings
    logger.info("Starting %s", settings.APP_NAME)

    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(app.state.engine)
        logger.info("Database tables ready")

    storage = app.state.avatar_storage
    if isinstance(storage, AvatarStorage):
        try:
            storage.ensure_bucket()
            logger.info("MinIO bucket ready")
        except Exception as e:
            logger.warning("MinIO not available: %s", e)

    yield

    app.state.engine.dispose()
    logger.info("Shutting down %s", settings.APP_NAME)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        msg = error.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return ", ".join(parts)


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(SarahaError)
    async def saraha_exception_handler(request: Request, exc: SarahaError):
        status = "fail" if exc.status_code < 500 else "error"
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": status, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"status": "fail", "message": _format_validation_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"status": "error", "message": "Something went very wrong!"}
        if settings.DEBUG:
            content["error"] = str(exc)
            content["type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def create_app(
    settings: Optional[Settings] = None,
    email_service: Optional[EmailService] = None,
    avatar_storage: Optional[AvatarStorage] = None,
    identity_provider: Optional[GoogleIdentityProvider] = None,
) -> FastAPI:
    """Build the application; collaborators may be swapped (e.g. in tests)."""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title="Saraha API",
        description="Anonymous messaging with JWT authentication",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.email_service = email_service or EmailService(settings)
    app.state.avatar_storage = avatar_storage or AvatarStorage(settings)
    app.state.identity_provider = identity_provider or GoogleIdentityProvider(settings)

    # Middleware
    setup_middleware(app, settings)

    # Rate limiting (process-wide, see configure_limiter)
    app.state.limiter = configure_limiter(settings)

    register_exception_handlers(app, settings)

    # Register routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(messages_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": "0.1.0",
            "docs": "/docs",
        }

    @app.get("/api/health")
    def health(request: Request):
        """Quick health check endpoint."""
        try:
            with request.app.state.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            db_status = "ok"
        except Exception:
            logger.exception("Database health check failed")
            db_status = "error"
        return {"status": "ok" if db_status == "ok" else "degraded", "database": db_status}

    return app
