"""Google Play Developer API client for subscription purchases.

Wraps ``purchases.subscriptions.get`` (androidpublisher v3) behind a service
account JWT credential. The bearer token is cached on the client and only
refreshed once the credential reports it invalid.
"""

from __future__ import annotations

import json
import logging
import threading
from http import client as http_client
from typing import Any, Dict, Optional
from urllib import error as url_error
from urllib import parse as url_parse
from urllib import request as url_request

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from .results import (
    MALFORMED_EXPIRY,
    VENDOR_REJECTED,
    Invalid,
    TransientFailure,
    Valid,
    VendorVerificationResult,
    mask_token,
    parse_epoch_millis,
)

logger = logging.getLogger("api.play")

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"
ANDROID_PUBLISHER_BASE_URL = "https://androidpublisher.googleapis.com/androidpublisher/v3"


class _BoundedAuthRequest(GoogleAuthRequest):
    """google-auth transport that applies our timeout to token refreshes."""

    def __init__(self, timeout_sec: float) -> None:
        super().__init__()
        self._timeout_sec = timeout_sec

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout_sec,
            **kwargs,
        )


class PlayBillingClient:
    def __init__(
        self,
        credentials: Any,
        *,
        timeout_sec: float = 8.0,
        base_url: str = ANDROID_PUBLISHER_BASE_URL,
    ) -> None:
        self._credentials = credentials
        self._timeout_sec = timeout_sec
        self._base_url = base_url.rstrip("/")
        self._token_lock = threading.Lock()

    @classmethod
    def from_service_account_file(cls, path: str, *, timeout_sec: float = 8.0) -> "PlayBillingClient":
        credentials = service_account.Credentials.from_service_account_file(
            path,
            scopes=[ANDROID_PUBLISHER_SCOPE],
        )
        return cls(credentials, timeout_sec=timeout_sec)

    def _access_token(self) -> str:
        with self._token_lock:
            if not self._credentials.valid:
                self._credentials.refresh(_BoundedAuthRequest(self._timeout_sec))
                logger.debug("Play credentials refreshed")
            token = str(getattr(self._credentials, "token", "") or "").strip()
        if not token:
            raise GoogleAuthError("Play credentials produced an empty access token")
        return token

    def _subscription_url(self, package_name: str, product_id: str, purchase_token: str) -> str:
        return (
            f"{self._base_url}/applications/{url_parse.quote(package_name, safe='')}"
            f"/purchases/subscriptions/{url_parse.quote(product_id, safe='')}"
            f"/tokens/{url_parse.quote(purchase_token, safe='')}"
        )

    def verify(self, package_name: str, product_id: str, purchase_token: str) -> VendorVerificationResult:
        """Look up one subscription purchase and normalize the answer."""
        try:
            bearer = self._access_token()
        except (GoogleAuthError, OSError) as exc:
            logger.warning("Play authorization failed package=%s: %s", package_name, exc)
            return TransientFailure(cause=f"authorization failed: {exc}")

        req = url_request.Request(
            url=self._subscription_url(package_name, product_id, purchase_token),
            headers={
                "Authorization": f"Bearer {bearer}",
                "Accept": "application/json",
            },
        )
        try:
            with url_request.urlopen(req, timeout=self._timeout_sec) as resp:
                body = resp.read()
        except url_error.HTTPError as http_exc:
            message = _google_error_message(http_exc)
            logger.info(
                "Play rejected subscription package=%s sku=%s token=%s status=%s message=%s",
                package_name,
                product_id,
                mask_token(purchase_token),
                http_exc.code,
                message,
            )
            return Invalid(vendor_status_code=http_exc.code, vendor_message=message)
        except (url_error.URLError, OSError, http_client.HTTPException) as exc:
            logger.warning("Unable to reach Google Play API package=%s: %s", package_name, exc)
            return TransientFailure(cause=f"Google Play API unreachable: {exc}")

        # UnicodeDecodeError is a ValueError
        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return Invalid(
                vendor_status_code=200,
                vendor_message="Invalid response from Google Play API",
                reason=VENDOR_REJECTED,
            )
        return parse_subscription_purchase(payload)


def parse_subscription_purchase(payload: Dict[str, Any]) -> VendorVerificationResult:
    """Normalize a ``SubscriptionPurchase`` resource."""
    try:
        expires_ms = parse_epoch_millis(payload.get("expiryTimeMillis"))
        cancelled_ms = parse_epoch_millis(payload.get("userCancellationTimeMillis"))
    except ValueError:
        return Invalid(vendor_status_code=200, vendor_message="malformed expiry", reason=MALFORMED_EXPIRY)
    return Valid(expires_at_ms=expires_ms, cancelled_at_ms=cancelled_ms)


def _google_error_message(http_exc: url_error.HTTPError) -> str:
    body_text = ""
    try:
        body_text = http_exc.read().decode("utf-8")
    except Exception:
        body_text = ""
    parsed_body: Optional[Dict[str, Any]] = None
    if body_text:
        try:
            parsed = json.loads(body_text)
            if isinstance(parsed, dict):
                parsed_body = parsed
        except ValueError:
            parsed_body = None
    error = (parsed_body or {}).get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return str(http_exc.reason or "Google Play API request failed")
