"""FastAPI dependencies for authentication, Firestore and vendor clients.

Vendor clients are built once per process by their provider and injected into
a per-request ``VerificationOrchestrator``; tests swap any of them through
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import firebase_admin
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials, firestore
from google.auth.exceptions import GoogleAuthError

from . import config
from .services.push import PushSender
from .verification import (
    AppStoreReceiptClient,
    EntitlementWriter,
    PlayBillingClient,
    VerificationOrchestrator,
)

logger = logging.getLogger("api.dependencies")
security_logger = logging.getLogger("security")

bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# FIREBASE INITIALIZATION
# =============================================================================

_firebase_app: Optional[firebase_admin.App] = None
_firestore_client = None


def get_firebase_app() -> firebase_admin.App:
    """Get or initialize Firebase Admin app."""
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app
    except ValueError:
        pass

    if not Path(config.SERVICE_ACCOUNT_PATH).exists():
        raise RuntimeError(f"Service account not found: {config.SERVICE_ACCOUNT_PATH}")

    cred = credentials.Certificate(config.SERVICE_ACCOUNT_PATH)
    _firebase_app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin initialized")
    return _firebase_app


def get_firestore() -> firestore.Client:
    """Get Firestore client (singleton)."""
    global _firestore_client

    if _firestore_client is None:
        get_firebase_app()
        _firestore_client = firestore.client()
        logger.info("Firestore client initialized")

    return _firestore_client


# =============================================================================
# VENDOR CLIENTS
# =============================================================================

@lru_cache(maxsize=1)
def get_play_client() -> Optional[PlayBillingClient]:
    """Play Developer API client, or None when no service account is present."""
    path = config.GOOGLE_PLAY_SERVICE_ACCOUNT
    if not path or not Path(path).exists():
        logger.error("Google Play service account not found: %s", path)
        return None
    try:
        client = PlayBillingClient.from_service_account_file(path, timeout_sec=config.GOOGLE_API_TIMEOUT_SEC)
    except (GoogleAuthError, ValueError, OSError) as exc:
        logger.error("Google Play service account unusable: %s (%s)", path, exc)
        return None
    logger.info("Google Play billing client initialized")
    return client


@lru_cache(maxsize=1)
def get_appstore_client() -> AppStoreReceiptClient:
    return AppStoreReceiptClient(timeout_sec=config.APPLE_API_TIMEOUT_SEC)


def get_entitlement_writer(db: firestore.Client = Depends(get_firestore)) -> EntitlementWriter:
    return EntitlementWriter(db)


def get_orchestrator(
    play_client: Optional[PlayBillingClient] = Depends(get_play_client),
    appstore_client: AppStoreReceiptClient = Depends(get_appstore_client),
    writer: EntitlementWriter = Depends(get_entitlement_writer),
) -> VerificationOrchestrator:
    return VerificationOrchestrator(
        play_client=play_client,
        appstore_client=appstore_client,
        writer=writer,
        apple_shared_secret=config.APPLE_SHARED_SECRET,
        default_package_name=config.GOOGLE_PLAY_PACKAGE_NAME,
        conditional_writes=config.ENTITLEMENT_CONDITIONAL_WRITES,
    )


def get_push_sender() -> PushSender:
    return PushSender(get_firebase_app())


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def verify_firebase_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Dict[str, Any]:
    """Verify Firebase ID token from Authorization header.

    Security checks:
    - Valid signature, not expired, not revoked
    - Token age < MAX_TOKEN_AGE_SECONDS
    - Not issued in the future beyond CLOCK_SKEW_SECONDS

    Returns:
        Decoded token claims including 'uid'

    Raises:
        HTTPException 401 on any auth failure
    """
    if credentials is None:
        _log_auth_failure(request, "missing_auth_header")
        raise HTTPException(401, "Missing Authorization header")

    token = credentials.credentials

    try:
        get_firebase_app()
        decoded = auth.verify_id_token(token, check_revoked=True)

        if not config.SKIP_TOKEN_AGE_CHECK:
            now = datetime.now(timezone.utc).timestamp()
            issued_at = decoded.get('iat', 0)

            if now - issued_at > config.MAX_TOKEN_AGE_SECONDS:
                _log_auth_failure(request, "token_too_old", uid=decoded.get('uid'))
                raise HTTPException(401, "Token too old, please re-authenticate")

            if issued_at > now + config.CLOCK_SKEW_SECONDS:
                _log_auth_failure(request, "future_token", uid=decoded.get('uid'))
                raise HTTPException(401, "Invalid token timestamp")

        return decoded

    except HTTPException:
        raise
    except auth.RevokedIdTokenError:
        _log_auth_failure(request, "revoked_token")
        raise HTTPException(401, "Token has been revoked")
    except auth.ExpiredIdTokenError:
        _log_auth_failure(request, "expired_token")
        raise HTTPException(401, "Token has expired")
    except auth.InvalidIdTokenError as e:
        _log_auth_failure(request, "invalid_token", error=str(e))
        raise HTTPException(401, "Invalid token")
    except Exception as e:
        _log_auth_failure(request, "auth_error", error=str(e))
        raise HTTPException(401, "Authentication failed")


def _log_auth_failure(request: Request, reason: str, **extra):
    """Log authentication failure for security monitoring."""
    security_logger.warning({
        "event": "auth_failure",
        "reason": reason,
        "ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
        "path": request.url.path,
        **extra
    })


# =============================================================================
# AUTHORIZATION
# =============================================================================

def require_self_access(user_id: str, decoded_token: Dict[str, Any]) -> None:
    """Only the signed-in user may change their own entitlement.

    Raises:
        HTTPException 403 when the token belongs to someone else
    """
    uid = decoded_token.get('uid')
    if uid != user_id:
        security_logger.warning({
            "event": "unauthorized_entitlement_write",
            "uid": uid,
            "target_user": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })
        raise HTTPException(403, "Access denied")
