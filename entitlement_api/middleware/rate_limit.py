"""Rate limiting middleware using slowapi.

Default limits:
- Global: 100 req/min per IP
- Verification endpoints: VERIFY_RATE_LIMIT (each call hits a vendor API)
- Write endpoints: 10 req/min
"""

from __future__ import annotations

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .. import config
from ..utils.client_ip import get_client_ip

logger = logging.getLogger("api.rate_limit")
security_logger = logging.getLogger("security")


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/minute"],
    storage_uri="memory://",
    enabled=config.RATE_LIMIT_ENABLED,
)


# Usage: @rate_limit_verify on verification endpoints
rate_limit_verify = limiter.limit(config.VERIFY_RATE_LIMIT)
rate_limit_write = limiter.limit("10/minute")


def setup_rate_limiting(app):
    """Configure rate limiting on the FastAPI app.

    Call this in main.py after creating the app.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _custom_rate_limit_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info("Rate limiting enabled=%s verify=%s", limiter.enabled, config.VERIFY_RATE_LIMIT)


async def _custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Log the event and return 429 with Retry-After header."""
    ip = get_client_ip(request)

    security_logger.warning({
        "event": "rate_limit_exceeded",
        "ip": ip,
        "path": request.url.path,
        "method": request.method,
        "limit": str(exc.detail),
    })

    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "code": "RATE_LIMIT_EXCEEDED",
            "detail": str(exc.detail)
        },
        headers={"Retry-After": "60"}
    )
