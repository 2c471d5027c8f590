"""Unit tests for the entitlement decision."""
from __future__ import annotations

import pytest

from entitlement_api.verification import FREE, PREMIUM, Invalid, TransientFailure, Valid, decide
from entitlement_api.verification.results import (
    ACTIVE,
    CANCELLED,
    EXPIRED,
    MALFORMED_EXPIRY,
    MISSING_EXPIRY,
    VENDOR_REJECTED,
    VENDOR_UNAVAILABLE,
)

from .conftest import NOW_MS


@pytest.mark.parametrize("ahead_ms", [1, 1000, 1_000_000, 30 * 24 * 3600 * 1000])
def test_future_expiry_without_cancellation_is_premium(ahead_ms: int) -> None:
    decision = decide(Valid(expires_at_ms=NOW_MS + ahead_ms), NOW_MS)
    assert decision.package == PREMIUM
    assert decision.reason == ACTIVE


@pytest.mark.parametrize("cancelled_at", [None, NOW_MS - 5000, NOW_MS + 5000])
def test_past_expiry_is_free_regardless_of_cancellation(cancelled_at) -> None:
    decision = decide(Valid(expires_at_ms=NOW_MS - 1000, cancelled_at_ms=cancelled_at), NOW_MS)
    assert decision.package == FREE


def test_expiry_equal_to_now_counts_as_expired() -> None:
    decision = decide(Valid(expires_at_ms=NOW_MS), NOW_MS)
    assert (decision.package, decision.reason) == (FREE, EXPIRED)


@pytest.mark.parametrize("cancelled_at", [NOW_MS, NOW_MS - 1, NOW_MS - 86_400_000])
def test_past_cancellation_is_free_even_with_future_expiry(cancelled_at: int) -> None:
    decision = decide(Valid(expires_at_ms=NOW_MS + 1_000_000, cancelled_at_ms=cancelled_at), NOW_MS)
    assert (decision.package, decision.reason) == (FREE, CANCELLED)


def test_future_cancellation_keeps_premium_until_expiry() -> None:
    decision = decide(Valid(expires_at_ms=NOW_MS + 1_000_000, cancelled_at_ms=NOW_MS + 500), NOW_MS)
    assert decision.package == PREMIUM


def test_missing_expiry_is_free() -> None:
    decision = decide(Valid(expires_at_ms=None), NOW_MS)
    assert (decision.package, decision.reason) == (FREE, MISSING_EXPIRY)


def test_invalid_results_are_free_and_keep_their_reason() -> None:
    rejected = decide(Invalid(vendor_status_code=410, vendor_message="gone"), NOW_MS)
    malformed = decide(Invalid(0, "malformed expiry", reason=MALFORMED_EXPIRY), NOW_MS)
    assert (rejected.package, rejected.reason) == (FREE, VENDOR_REJECTED)
    assert (malformed.package, malformed.reason) == (FREE, MALFORMED_EXPIRY)


def test_transient_failure_fails_closed() -> None:
    decision = decide(TransientFailure(cause="timed out"), NOW_MS)
    assert (decision.package, decision.reason) == (FREE, VENDOR_UNAVAILABLE)


def test_decide_is_pure() -> None:
    result = Valid(expires_at_ms=NOW_MS + 10, cancelled_at_ms=None)
    first = decide(result, NOW_MS)
    decide(TransientFailure(cause="boom"), NOW_MS)
    decide(Valid(expires_at_ms=NOW_MS - 10), NOW_MS)
    assert decide(result, NOW_MS) == first


def test_unknown_result_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        decide(object(), NOW_MS)  # type: ignore[arg-type]
