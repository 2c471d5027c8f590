"""Per-request verification flow: vendor client -> decision -> single write."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from google.api_core import exceptions as gcp_exceptions

from .appstore import AppStoreReceiptClient
from .evaluator import decide, now_epoch_ms
from .play import PlayBillingClient
from .results import (
    APPLE,
    CANCELLED,
    EXPIRED,
    GOOGLE_PLAY,
    MALFORMED_EXPIRY,
    MISSING_EXPIRY,
    EntitlementDecision,
    Invalid,
    PersistenceError,
    PurchaseVerificationRequest,
    TransientFailure,
    VendorVerificationResult,
    VerificationOutcome,
    mask_token,
)
from .writer import EntitlementWriter

logger = logging.getLogger("api.verification")

SUCCESS_MESSAGE = "Subscription verification successful!"
FAILURE_MESSAGE = "Failed to verify subscription, Try again!"
EXPIRED_MESSAGE = "Subscription expired"
CANCELLED_MESSAGE = "Subscription cancelled"
MALFORMED_EXPIRY_MESSAGE = "malformed expiry"
PERSISTENCE_FAILURE_MESSAGE = "Failed to update entitlement"


class VerificationOrchestrator:
    def __init__(
        self,
        *,
        play_client: Optional[PlayBillingClient],
        appstore_client: Optional[AppStoreReceiptClient],
        writer: EntitlementWriter,
        apple_shared_secret: str = "",
        default_package_name: str = "",
        conditional_writes: bool = False,
        clock: Callable[[], int] = now_epoch_ms,
    ) -> None:
        self._play_client = play_client
        self._appstore_client = appstore_client
        self._writer = writer
        self._apple_shared_secret = apple_shared_secret
        self._default_package_name = default_package_name
        self._conditional_writes = conditional_writes
        self._clock = clock

    def verify(self, request: PurchaseVerificationRequest) -> VerificationOutcome:
        logger.info(
            "Verify subscription platform=%s user=%s sku=%s source=%s token=%s",
            request.platform,
            request.user_id,
            request.product_id,
            request.source,
            mask_token(request.purchase_token),
        )

        last_update_time = None
        if self._conditional_writes:
            try:
                last_update_time = self._writer.snapshot_update_time(request.user_id)
            except (gcp_exceptions.GoogleAPICallError, gcp_exceptions.RetryError):
                logger.exception("Entitlement precondition read failed user=%s", request.user_id)
                return VerificationOutcome(500, PERSISTENCE_FAILURE_MESSAGE)

        result = self._call_vendor(request)
        # Transient vendor failures are downgraded to FREE like rejections.
        # Whether an outage should leave the stored entitlement untouched
        # instead is still undecided; callers see the same 401 either way.
        if isinstance(result, TransientFailure):
            logger.warning(
                "Vendor unavailable platform=%s user=%s cause=%s; downgrading to FREE",
                request.platform,
                request.user_id,
                result.cause,
            )
        elif isinstance(result, Invalid):
            logger.info(
                "Vendor rejected purchase platform=%s user=%s status=%s reason=%s message=%s",
                request.platform,
                request.user_id,
                result.vendor_status_code,
                result.reason,
                result.vendor_message,
            )

        decision = decide(result, self._clock())
        try:
            self._writer.apply(
                request.user_id,
                decision,
                request.product_id,
                request.purchase_token,
                request.source,
                last_update_time=last_update_time,
            )
        except PersistenceError as exc:
            logger.exception(
                "Entitlement write failed user=%s package=%s code=%s",
                exc.user_id,
                decision.package,
                exc.code,
            )
            return VerificationOutcome(500, PERSISTENCE_FAILURE_MESSAGE)

        return _outcome_for(decision)

    def _call_vendor(self, request: PurchaseVerificationRequest) -> VendorVerificationResult:
        if request.platform == GOOGLE_PLAY:
            if self._play_client is None:
                return TransientFailure(cause="Google Play client not configured")
            package_name = (request.package_name or self._default_package_name).strip()
            if not package_name:
                return Invalid(vendor_status_code=0, vendor_message="Missing package name")
            return self._play_client.verify(package_name, request.product_id, request.purchase_token)

        if request.platform == APPLE:
            if self._appstore_client is None or not self._apple_shared_secret:
                logger.error("App Store verification is not configured (APPLE_SHARED_SECRET)")
                return TransientFailure(cause="App Store client not configured")
            return self._appstore_client.verify(request.purchase_token, self._apple_shared_secret)

        logger.warning("Unsupported platform=%r user=%s", request.platform, request.user_id)
        return Invalid(vendor_status_code=0, vendor_message="Unsupported platform")


def _outcome_for(decision: EntitlementDecision) -> VerificationOutcome:
    if decision.is_premium:
        return VerificationOutcome(200, SUCCESS_MESSAGE)
    if decision.reason == MALFORMED_EXPIRY:
        return VerificationOutcome(401, MALFORMED_EXPIRY_MESSAGE)
    if decision.reason == CANCELLED:
        return VerificationOutcome(401, CANCELLED_MESSAGE)
    if decision.reason in (EXPIRED, MISSING_EXPIRY):
        return VerificationOutcome(401, EXPIRED_MESSAGE)
    return VerificationOutcome(401, FAILURE_MESSAGE)
