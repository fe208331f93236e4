"""FastAPI application factory with middleware, routers, and lifespan."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api import api_router
from .auth.service import ensure_admin_user
from .config import Settings, settings, setup_logging
from .database.base import create_db_engine, create_session_factory, get_db
from .errors import AppError, format_validation_errors
from .integrations.cache import create_cache_service
from .rate_limit import limiter

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60


def _run_migrations(config: Settings) -> None:
    """Run Alembic migrations (upgrade head) on startup."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", config.effective_database_url)
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config: Settings = app.state.settings
    app.state.started_at = time.time()
    if getattr(app.state, "cache", None) is None:
        app.state.cache = create_cache_service(config.redis_url)

    if config.run_migrations:
        _run_migrations(config)

    db = app.state.session_factory()
    try:
        ensure_admin_user(db, config)
        db.commit()
    finally:
        db.close()

    yield

    app.state.engine.dispose()


def _error_body(message: str) -> dict:
    return {"message": message}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s", exc.message, request.method, request.url.path)
        return JSONResponse(_error_body(exc.message), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(_error_body(format_validation_errors(exc.errors())), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(_error_body(message), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            _error_body("Too many requests, please try again later."),
            status_code=429,
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            {
                "success": False,
                "statusCode": 500,
                "message": "Internal Server Error",
                "path": request.url.path,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status_code=500,
        )


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The engine and session factory are built here from *config* and stored
    on ``app.state``; the cache is connected on first startup.
    """
    config = config or settings
    setup_logging(config)

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)
    app.state.settings = config
    app.state.engine = create_db_engine(config.effective_database_url)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.cache = None
    app.state.started_at = time.time()

    _register_exception_handlers(app)

    # --- Middleware stack (LIFO: last added = outermost) ---

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.secret_key,
        max_age=600,
        https_only=config.cookie_secure,
    )

    limiter.enabled = config.rate_limit_enabled
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    if config.trusted_hosts_list != ["*"]:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=config.trusted_hosts_list,
        )

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request.state.request_id = (
            request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        )[:64]
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request.state.request_id
        logger.info(
            "request completed: %s %s -> %d (%.1f ms) id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response

    app.include_router(api_router)

    # --- Health check ---
    @app.get("/health")
    def health(request: Request, db: Session = Depends(get_db)):
        db_status = "ok"
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            db_status = "unreachable"

        started_at = request.app.state.started_at
        return {
            "status": "ok" if db_status == "ok" else "degraded",
            "db": db_status,
            "version": config.app_version,
            "uptime_seconds": round(time.time() - started_at, 1),
        }

    return app


app = create_app()
