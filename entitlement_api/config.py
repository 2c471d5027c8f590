"""Environment-driven configuration for the entitlement API.

All values are read once at import time. Secrets (service accounts, the App
Store shared secret) are opaque strings/paths; nothing here derives them.
"""

from __future__ import annotations

import os
from pathlib import Path


def _bool_env(name: str, default: bool = False) -> bool:
    raw = str(os.environ.get(name, "")).strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


API_DIR = Path(__file__).parent
PROJECT_DIR = API_DIR.parent

DEBUG_MODE = _bool_env("DEBUG", False)
API_VERSION = "1.0.0"

# Firebase Admin (Firestore, Auth, Cloud Messaging)
SERVICE_ACCOUNT_PATH = os.environ.get(
    "GOOGLE_APPLICATION_CREDENTIALS",
    str(PROJECT_DIR / "firebase-adminsdk.json"),
)

# Firebase ID token checks
MAX_TOKEN_AGE_SECONDS = int(os.environ.get("MAX_TOKEN_AGE_SECONDS", 3600))
CLOCK_SKEW_SECONDS = int(os.environ.get("CLOCK_SKEW_SECONDS", 300))
SKIP_TOKEN_AGE_CHECK = _bool_env("SKIP_TOKEN_AGE_CHECK", False)

# Google Play Developer API
GOOGLE_PLAY_SERVICE_ACCOUNT = str(
    os.environ.get("GOOGLE_PLAY_SERVICE_ACCOUNT", SERVICE_ACCOUNT_PATH)
).strip()
GOOGLE_PLAY_PACKAGE_NAME = str(os.environ.get("GOOGLE_PLAY_PACKAGE_NAME", "")).strip()
GOOGLE_API_TIMEOUT_SEC = float(os.environ.get("GOOGLE_API_TIMEOUT_SEC", "8"))

# App Store receipt validation
APPLE_SHARED_SECRET = str(os.environ.get("APPLE_SHARED_SECRET", "")).strip()
APPLE_API_TIMEOUT_SEC = float(os.environ.get("APPLE_API_TIMEOUT_SEC", "8"))

# Entitlement writes
ENTITLEMENT_CONDITIONAL_WRITES = _bool_env("ENTITLEMENT_CONDITIONAL_WRITES", False)

# Rate limiting
RATE_LIMIT_ENABLED = _bool_env("RATE_LIMIT_ENABLED", True)
VERIFY_RATE_LIMIT = str(os.environ.get("VERIFY_RATE_LIMIT", "10/minute")).strip()

# Mute expiry worker
MUTE_CHECK_POLL_SECONDS = int(os.environ.get("MUTE_CHECK_POLL_SECONDS", "300"))

# CORS - strict origin allowlist
ALLOWED_ORIGINS = [
    origin.strip().rstrip("/")
    for origin in str(
        os.environ.get("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000")
    ).split(",")
    if origin.strip()
]
