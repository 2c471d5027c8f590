"""Typed contracts that move through one verification call.

Vendor clients never hand raw vendor JSON or transport exceptions to the
orchestrator; they return one of ``Valid``, ``Invalid`` or
``TransientFailure``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union


Platform = Literal["GOOGLE_PLAY", "APPLE"]
GOOGLE_PLAY: Platform = "GOOGLE_PLAY"
APPLE: Platform = "APPLE"

SubscriptionPackage = Literal["PREMIUM", "FREE"]
PREMIUM: SubscriptionPackage = "PREMIUM"
FREE: SubscriptionPackage = "FREE"

# Decision reason codes
ACTIVE = "ACTIVE"
EXPIRED = "EXPIRED"
CANCELLED = "CANCELLED"
MISSING_EXPIRY = "MISSING_EXPIRY"
MALFORMED_EXPIRY = "MALFORMED_EXPIRY"
VENDOR_REJECTED = "VENDOR_REJECTED"
VENDOR_UNAVAILABLE = "VENDOR_UNAVAILABLE"


@dataclass(frozen=True)
class PurchaseVerificationRequest:
    platform: Platform
    product_id: str
    purchase_token: str  # never log in full, see mask_token()
    user_id: str
    source: Optional[str] = None
    package_name: Optional[str] = None  # Play only


@dataclass(frozen=True)
class Valid:
    expires_at_ms: Optional[int] = None
    cancelled_at_ms: Optional[int] = None


@dataclass(frozen=True)
class Invalid:
    vendor_status_code: int
    vendor_message: str
    reason: str = VENDOR_REJECTED


@dataclass(frozen=True)
class TransientFailure:
    cause: str


VendorVerificationResult = Union[Valid, Invalid, TransientFailure]


@dataclass(frozen=True)
class EntitlementDecision:
    package: SubscriptionPackage
    reason: str

    @property
    def is_premium(self) -> bool:
        return self.package == PREMIUM


@dataclass(frozen=True)
class VerificationOutcome:
    """Caller-facing result: ``status`` is 200, 401 or 500."""

    status: int
    message: str

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message}


class PersistenceError(Exception):
    """The entitlement decision was made but could not be stored."""

    def __init__(self, message: str, *, user_id: str, code: str = "PERSISTENCE_FAILED") -> None:
        super().__init__(message)
        self.user_id = user_id
        self.code = code


def mask_token(token: Optional[str]) -> str:
    value = str(token or "")
    if len(value) <= 8:
        return "***"
    return f"{value[:8]}..."


def parse_epoch_millis(value) -> Optional[int]:
    """Parse an int64 millisecond timestamp sent as a number or decimal string.

    Returns None for absent/empty values. Raises ValueError when a value is
    present but not an integer.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"not an epoch millis value: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"not an epoch millis value: {value!r}")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if not stripped.lstrip("-").isdigit():
            raise ValueError(f"not an epoch millis value: {value!r}")
        return int(stripped)
    raise ValueError(f"not an epoch millis value: {value!r}")
