"""
FastAPI Application Entry Point
===============================

Main FastAPI application with health check, middleware, error envelope
and lifecycle management.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedhub import __version__
from feedhub.config.settings import get_settings
from feedhub.db.connection import close_database, init_database
from feedhub.db.connection import health_check as db_health_check
from feedhub.utils.errors import FeedHubError
from feedhub.utils.logger import configure_logging, get_logger

# Configure logging at module load
configure_logging()
logger = get_logger(__name__)


def error_response(status_code: int, message: str, details: Any = None) -> JSONResponse:
    """The ``{"error": ...}`` envelope every failure is returned in."""
    content: dict[str, Any] = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def format_validation_errors(exc: RequestValidationError) -> tuple[str, list[dict[str, Any]]]:
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    if not details:
        return "Invalid request", details
    first = details[0]
    location = ".".join(part for part in first["loc"] if part != "body")
    message = f"{location}: {first['msg']}" if location else first["msg"]
    return message, details


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Opens the database pool on startup and closes it on shutdown.
    """
    settings = get_settings()
    logger.info(
        "feedhub_starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        await init_database(settings)
        logger.info("database_pool_initialized")
    except FeedHubError as e:
        # Requests fail with 500 until the database is reachable; /health reports it
        logger.error("database_init_failed", error=e.message)

    yield

    logger.info("feedhub_shutting_down")
    await close_database()


def create_app() -> FastAPI:
    """
    FastAPI application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Supplier Feed Hub API",
        description=(
            "Multi-tenant supplier feed ingestion: connect CSV/JSON/XML supplier "
            "feeds, map them onto a custom product schema, organize categories "
            "and publish exports and live feeds."
        ),
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.cors_origins,
        allow_credentials=not settings.is_development,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Request Logging Middleware
    # -------------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """
        Log all incoming requests with timing and correlation ID.

        Adds X-Request-ID header for tracing and X-Process-Time header
        with request duration in seconds.
        """
        request_id = str(uuid4())
        start_time = time.perf_counter()

        logger.info(
            "request_received",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            client_ip=request.client.host if request.client else None,
        )

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        logger.info(
            "request_completed",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )

        return response

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(FeedHubError)
    async def feedhub_error_handler(request: Request, exc: FeedHubError) -> JSONResponse:
        """Handle application-specific errors."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "application_error",
            error_type=type(exc).__name__,
            message=exc.message,
            details=exc.details,
            status_code=exc.status_code,
            path=str(request.url.path),
        )
        return error_response(exc.status_code, exc.message, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message, details = format_validation_errors(exc)
        logger.info("request_validation_failed", path=str(request.url.path), message=message)
        return error_response(status.HTTP_400_BAD_REQUEST, message, details)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "unexpected_error",
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get("/health", tags=["Health"], summary="Health check endpoint")
    async def health_check() -> dict[str, Any]:
        """Service health and database connectivity."""
        db_status = await db_health_check()
        return {
            "status": "healthy" if db_status.get("status") == "healthy" else "degraded",
            "version": __version__,
            "service": "feedhub",
            "checks": {"database": db_status},
        }

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    from feedhub.api.routes import (
        categories_router,
        exports_router,
        feed_router,
        fields_router,
        session_router,
        suppliers_router,
    )

    app.include_router(session_router, prefix="/api", tags=["Session"])
    app.include_router(suppliers_router, prefix="/api/suppliers", tags=["Suppliers"])
    app.include_router(fields_router, prefix="/api/fields", tags=["Fields"])
    app.include_router(categories_router, prefix="/api/categories", tags=["Categories"])
    app.include_router(feed_router, prefix="/api/exports/feed", tags=["Live feed"])
    app.include_router(exports_router, prefix="/api/exports", tags=["Exports"])

    return app


# Create application instance
app = create_app()
