"""
DevDoc Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       with middleware, exception handlers and routers attached.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: RateLimit → RequestID → Logging → Security  │
    │              Headers → GZip → CORS                       │
    │                                                          │
    │  Routes:  /api/auth/*   /api/projects/*   /uploads/*     │
    │           /api/health                                    │
    │                                                          │
    │  Exception Handlers:                                     │
    │    DevDocError → its status_code, {"error", "code"}      │
    │    request validation → 400    unknown route → 404       │
    │    anything else → 500                                   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, uploads directory, SQLite tables
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import settings
from app.database import create_tables, dispose_engine
from app.exceptions import DevDocError, UnauthorizedError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, error_body, request_id_var
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.routes import auth, health, projects, uploads

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] app.services.project_service: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("DevDoc Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts so health checks can report it
        logger.error("Configuration error: %s", str(e))

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", upload_dir.resolve())

    if settings.database_url.startswith("sqlite"):
        # PostgreSQL deployments run `alembic upgrade head` instead
        await create_tables()
        logger.info("SQLite schema ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("DevDoc Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to HTTP responses with one error body format.

    Handler hierarchy:
        UnauthorizedError       → 401 + WWW-Authenticate: Bearer
        DevDocError (any other) → exc.status_code (400/404/500)
        RequestValidationError  → 400, first field message
        Starlette HTTPException → its status (unknown route → 404)
        Exception (fallback)    → 500, generic in production

    Internal context (driver errors, paths) is logged, never returned.
    """

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(DevDocError)
    async def handle_devdoc_error(request: Request, exc: DevDocError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        details = None
        if exc.status_code < 500 and "field" in exc.context:
            details = {"field": exc.context["field"]}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code, details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Body/query/path validation failed; report the first problem as 400."""
        errors = exc.errors()
        message = "Invalid request"
        details = None
        if errors:
            first = errors[0]
            location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
            field = ".".join(location)
            message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", message)
            details = {"field": field} if field else None
        return JSONResponse(status_code=400, content=error_body(message, "validation_error", details))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        message = "Something went wrong!" if settings.is_production else str(exc)
        return JSONResponse(status_code=500, content=error_body(message, "internal_server_error"))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="DevDoc API",
        description=(
            "Personal project vault: organize projects with markdown notes, "
            "code snippets, links and uploaded files, search them, and share "
            "read-only views."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → SecurityHeaders → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


app = create_app()
