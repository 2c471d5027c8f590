"""Entitlement decision from a normalized vendor result."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .results import (
    ACTIVE,
    CANCELLED,
    EXPIRED,
    FREE,
    MISSING_EXPIRY,
    PREMIUM,
    VENDOR_UNAVAILABLE,
    EntitlementDecision,
    Invalid,
    TransientFailure,
    Valid,
    VendorVerificationResult,
)


def now_epoch_ms(now: Optional[datetime] = None) -> int:
    current = now or datetime.now(timezone.utc)
    return int(current.timestamp() * 1000)


def decide(result: VendorVerificationResult, now_ms: int) -> EntitlementDecision:
    """Decide PREMIUM vs FREE for ``result`` at wall-clock ``now_ms``.

    Anything short of a Valid result with a future expiry and no past
    cancellation is FREE, including transient vendor failures.
    """
    if isinstance(result, TransientFailure):
        return EntitlementDecision(FREE, VENDOR_UNAVAILABLE)
    if isinstance(result, Invalid):
        return EntitlementDecision(FREE, result.reason)
    if not isinstance(result, Valid):
        raise TypeError(f"Unsupported vendor result: {type(result).__name__}")

    if result.cancelled_at_ms is not None and result.cancelled_at_ms <= now_ms:
        return EntitlementDecision(FREE, CANCELLED)
    if result.expires_at_ms is None:
        return EntitlementDecision(FREE, MISSING_EXPIRY)
    if result.expires_at_ms <= now_ms:
        return EntitlementDecision(FREE, EXPIRED)
    return EntitlementDecision(PREMIUM, ACTIVE)
