"""Health check router - service and vendor configuration status.

Endpoints:
    GET /api/health - Overall health status
    GET /api/health/firebase - Firestore connectivity
    GET /api/health/vendors - Which vendor verifications are configured
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from .. import config
from ..dependencies import get_firestore, get_play_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Basic health check - no auth required."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": config.API_VERSION
    }


@router.get("/health/firebase")
def firebase_health(
    db = Depends(get_firestore)
) -> dict:
    """Firebase/Firestore health check.

    Performs a simple read to verify connectivity.
    """
    try:
        # Even if doc doesn't exist, connection worked
        db.collection('_health').document('ping').get()
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.warning("Firestore health check failed: %s", e)
        return {
            "status": "unhealthy",
            "error": str(e) if config.DEBUG_MODE else "Firestore unreachable",
            "timestamp": datetime.utcnow().isoformat()
        }


@router.get("/health/vendors")
def vendor_health(play_client = Depends(get_play_client)) -> dict:
    """Report whether each vendor can be called; never exposes secrets."""
    return {
        "googlePlay": play_client is not None,
        "appStore": bool(config.APPLE_SHARED_SECRET),
        "timestamp": datetime.utcnow().isoformat()
    }
