"""
VidVault FastAPI Application Entry Point

This module wires the VidVault upload service together:

- FastAPI application with lifespan-managed MongoDB, S3 and media tool checks
- CORS middleware and request logging middleware (X-Request-ID, X-Process-Time)
- API router registration under the /api/v1 prefix
- One exception handler rendering every VidVaultError
- Health (liveness) and readiness endpoints
- Static serving of locally stored thumbnails under the assets prefix

API Structure:
    /api/v1/upload/{video_id}        - thumbnail upload
    /api/v1/upload-video/{video_id}  - video upload
    /api/v1/videos                   - caller's videos with signed URLs
    /api/v1/videos/{video_id}        - one owned video with signed URLs
    /api/v1/thumbnails/{video_id}    - public thumbnail resolver

Usage:
    # Run with uvicorn directly
    uvicorn vidvault.main:app --host 0.0.0.0 --port 8091 --reload

    # Run as Python module
    python -m vidvault.main
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from vidvault import __version__
from vidvault.api.v1 import api_router
from vidvault.config import get_settings
from vidvault.core.database import close_db, get_db_client, init_db
from vidvault.core.errors import Unauthenticated, VidVaultError
from vidvault.core.storage import init_storage
from vidvault.services.media_tools import FFmpegToolkit
from vidvault.utils.logger import setup_logging


logger = logging.getLogger(__name__)

HTTP_ERROR_THRESHOLD = 400
GENERIC_ERROR_MESSAGE = "An unexpected error occurred."
REQUEST_ID_HEADER = "X-Request-ID"


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Manage application startup and shutdown.

    Startup fails (and the process exits) when MongoDB is unreachable, the
    bucket check fails or the installed ffmpeg does not match a configured
    version pin. Missing media tools are only logged, so the read endpoints
    stay available.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info("=" * 60)
    logger.info("%s API starting (version %s)", settings.app_name, __version__)
    logger.info("=" * 60)
    logger.info("Environment: %s", settings.app_env)
    logger.info("Host: %s:%d", settings.host, settings.port)

    await init_db(settings)

    storage = init_storage(settings)
    if settings.check_bucket_on_startup:
        await storage.check_bucket()

    if settings.stores_thumbnails_locally:
        settings.assets_root.mkdir(parents=True, exist_ok=True)
        logger.info("Thumbnails are written to %s", settings.assets_root.resolve())

    versions = await FFmpegToolkit(settings).describe()
    for tool, version in versions.items():
        logger.info("Media tool %s: %s", tool, version or "not found")

    logger.info("%s API ready to accept requests", settings.app_name)

    yield

    logger.info("%s API shutting down", settings.app_name)
    await close_db()
    logger.info("%s API shutdown complete", settings.app_name)


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title=f"{_settings.app_name} API",
    description=(
        "Video and thumbnail ingestion: uploads are rewritten for progressive "
        "playback, classified by orientation and stored in object storage. "
        "Reads return short-lived signed URLs."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER, "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its duration and tag the response.

    An incoming X-Request-ID is reused, otherwise a new one is generated.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    start_time = time.perf_counter()

    logger.debug(
        "Request started: %s %s",
        request.method,
        request.url.path,
        extra={"request_id": request_id},
    )

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed: %s %s",
            request.method,
            request.url.path,
            extra={"request_id": request_id},
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers[REQUEST_ID_HEADER] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [%d] in %sms",
        request.method,
        request.url.path,
        response.status_code,
        process_time_ms,
        extra={"request_id": request_id, "status_code": response.status_code},
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(VidVaultError)
async def vidvault_error_handler(request: Request, exc: VidVaultError) -> JSONResponse:
    """
    Render a pipeline error as ``{"error", "message", "details"?}``.

    Server-side errors are logged with their specific code and message; the
    client only sees a generic message.
    """
    if exc.is_server_error:
        logger.error(
            "%s on %s %s: %s",
            exc.error_code,
            request.method,
            request.url.path,
            exc.message,
            extra={"error_code": exc.error_code, "details": exc.details},
            exc_info=exc,
        )
        content: dict[str, Any] = {"error": "server_error", "message": GENERIC_ERROR_MESSAGE}
    else:
        content = {"error": exc.error_code, "message": exc.message}
        if exc.details:
            content["details"] = exc.details

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the failure and hide its details from the client."""
    logger.error(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "server_error", "message": GENERIC_ERROR_MESSAGE},
    )


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api/v1")

if _settings.stores_thumbnails_locally:
    # check_dir=False: the lifespan creates assets_root after import
    app.mount(
        _settings.assets_url_prefix,
        StaticFiles(directory=_settings.assets_root, check_dir=False),
        name="assets",
    )


# =============================================================================
# Core Endpoints
# =============================================================================


@app.get("/health", tags=["health"], summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Liveness probe; answers without touching any dependency."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": _settings.app_name,
    }


@app.get("/ready", tags=["health"], summary="Readiness Check")
async def readiness_check() -> JSONResponse:
    """
    Readiness probe.

    Returns 200 when MongoDB answers a ping and 503 otherwise.
    """
    checks: dict[str, bool] = {}
    try:
        checks["mongodb"] = await get_db_client().ping()
    except RuntimeError:
        checks["mongodb"] = False

    is_ready = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "ready": is_ready,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )


# =============================================================================
# Main Execution Block
# =============================================================================

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "vidvault.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
        access_log=settings.debug,
    )
