"""App Store ``verifyReceipt`` client with production -> sandbox routing.

Receipts are always submitted to production first. Status 21007 means the
receipt belongs to the sandbox environment; the identical payload is then
submitted once to sandbox. Sandbox answers are final.
"""

from __future__ import annotations

import json
import logging
from http import client as http_client
from typing import Any, Dict, Optional
from urllib import error as url_error
from urllib import request as url_request

from .results import (
    MALFORMED_EXPIRY,
    Invalid,
    TransientFailure,
    Valid,
    VendorVerificationResult,
    mask_token,
    parse_epoch_millis,
)

logger = logging.getLogger("api.appstore")

PRODUCTION_VERIFY_URL = "https://buy.itunes.apple.com/verifyReceipt"
SANDBOX_VERIFY_URL = "https://sandbox.itunes.apple.com/verifyReceipt"

STATUS_OK = 0
STATUS_SANDBOX_RECEIPT = 21007


class _TransportError(Exception):
    pass


class AppStoreReceiptClient:
    def __init__(
        self,
        *,
        timeout_sec: float = 8.0,
        production_url: str = PRODUCTION_VERIFY_URL,
        sandbox_url: str = SANDBOX_VERIFY_URL,
    ) -> None:
        self._timeout_sec = timeout_sec
        self._production_url = production_url
        self._sandbox_url = sandbox_url

    def verify(self, purchase_token: str, shared_secret: str) -> VendorVerificationResult:
        """Validate a receipt blob and normalize the App Store answer."""
        payload = {
            "receipt-data": purchase_token,
            "password": shared_secret,
            "exclude-old-transactions": True,
        }
        body = json.dumps(payload).encode("utf-8")

        try:
            logger.info("Calling App Store production token=%s", mask_token(purchase_token))
            response = self._post(self._production_url, body)
            if _status_of(response) == STATUS_SANDBOX_RECEIPT:
                logger.info("Receipt belongs to sandbox, resubmitting token=%s", mask_token(purchase_token))
                response = self._post(self._sandbox_url, body)
        except _TransportError as exc:
            logger.warning("App Store verification transport failure: %s", exc)
            return TransientFailure(cause=str(exc))

        return parse_receipt_response(response)

    def _post(self, url: str, body: bytes) -> Any:
        req = url_request.Request(
            url=url,
            data=body,
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        try:
            with url_request.urlopen(req, timeout=self._timeout_sec) as resp:
                raw = resp.read()
        except url_error.HTTPError as http_exc:
            raise _TransportError(f"App Store returned HTTP {http_exc.code}") from http_exc
        except (url_error.URLError, OSError, http_client.HTTPException) as exc:
            raise _TransportError(f"Unable to reach App Store: {exc}") from exc
        try:
            return json.loads(raw.decode("utf-8")) if raw else None
        except ValueError:
            return None


def _status_of(response: Any) -> Optional[int]:
    if not isinstance(response, dict):
        return None
    status = response.get("status")
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def parse_receipt_response(response: Any) -> VendorVerificationResult:
    """Normalize a ``verifyReceipt`` response body."""
    status = _status_of(response)
    if status is None:
        return Invalid(vendor_status_code=-1, vendor_message="Invalid response from App Store")
    if status != STATUS_OK:
        return Invalid(vendor_status_code=status, vendor_message=f"App Store status {status}")

    malformed = Invalid(vendor_status_code=status, vendor_message="malformed expiry", reason=MALFORMED_EXPIRY)
    receipts = response.get("latest_receipt_info")
    if not isinstance(receipts, list) or not receipts or not isinstance(receipts[0], dict):
        return malformed
    latest: Dict[str, Any] = receipts[0]
    try:
        expires_ms = parse_epoch_millis(latest.get("expires_date_ms"))
        cancelled_ms = parse_epoch_millis(latest.get("cancellation_date_ms"))
    except ValueError:
        return malformed
    if expires_ms is None:
        return malformed
    return Valid(expires_at_ms=expires_ms, cancelled_at_ms=cancelled_ms)
