"""Client IP extraction for rate limiting.

Proxy headers are only honoured when TRUST_PROXY is set; otherwise the
direct peer address is used so clients cannot spoof their rate-limit key.
"""

from __future__ import annotations

import logging
import os

from fastapi import Request

logger = logging.getLogger("api.client_ip")

TRUST_PROXY = os.environ.get("TRUST_PROXY", "").lower() in ("1", "true")


def get_client_ip(request: Request) -> str:
    if TRUST_PROXY:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
