"""Subscription Entitlement API - Main Application.

FastAPI application that verifies Google Play and App Store subscriptions and
stores the resulting entitlement on the user's Firestore document.

Usage:
    uvicorn entitlement_api.main:app --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .dependencies import get_firebase_app, get_firestore
from .middleware.rate_limit import setup_rate_limiting
from .routers import health, notifications, verification

logging.basicConfig(
    level=logging.DEBUG if config.DEBUG_MODE else logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger("api.main")


# =============================================================================
# LIFESPAN (Startup/Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown hooks."""
    logger.info("Starting Entitlement API v%s", config.API_VERSION)
    logger.info("Debug mode: %s", config.DEBUG_MODE)

    try:
        get_firebase_app()
        logger.info("Firebase initialized")

        get_firestore()
        logger.info("Firestore connected")
    except Exception as e:
        logger.error("Startup failed: %s", e)
        raise

    if not config.APPLE_SHARED_SECRET:
        logger.warning("APPLE_SHARED_SECRET not set; App Store verification will fail closed")

    yield

    logger.info("Shutting down Entitlement API")


# =============================================================================
# APPLICATION
# =============================================================================

if config.DEBUG_MODE:
    app = FastAPI(
        title="Subscription Entitlement API",
        version=config.API_VERSION,
        lifespan=lifespan,
    )
else:
    # Production: disable docs endpoints
    app = FastAPI(
        title="Subscription Entitlement API",
        version=config.API_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )


# =============================================================================
# MIDDLEWARE
# =============================================================================

setup_rate_limiting(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    if "server" in response.headers:
        del response.headers["server"]

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration (never bodies or auth headers)."""
    start_time = datetime.now(timezone.utc)

    response = await call_next(request)

    duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    logger.debug(
        "%s %s -> %s (%.0fms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions with generic error response."""
    logger.exception("Unhandled exception on %s", request.url.path)

    if config.DEBUG_MODE:
        return JSONResponse(
            status_code=500,
            content={
                "error": str(exc),
                "code": "INTERNAL_ERROR",
                "type": type(exc).__name__
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "INTERNAL_ERROR"
        }
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(verification.router, prefix="/api", tags=["Verification"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": "Subscription Entitlement API",
        "version": config.API_VERSION,
        "status": "running"
    }
