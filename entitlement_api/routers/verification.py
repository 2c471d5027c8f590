"""Verification router - Google Play and App Store subscription checks.

Endpoints:
    POST /api/verify/google - Verify a Play subscription purchase token
    POST /api/verify/apple  - Verify an App Store receipt

Both always answer HTTP 200 with ``{status, message}``; ``status`` is 200 for
an active subscription, 401 when it could not be proven active, and 500 when
the decision could not be stored.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_orchestrator, require_self_access, verify_firebase_token
from ..middleware.rate_limit import rate_limit_verify
from ..models import AppleVerifyRequest, ErrorResponse, GoogleVerifyRequest, VerificationResponse
from ..verification import APPLE, GOOGLE_PLAY, PurchaseVerificationRequest, VerificationOrchestrator

router = APIRouter()
logger = logging.getLogger("api.routers.verification")


@router.post(
    "/verify/google",
    response_model=VerificationResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@rate_limit_verify
def verify_google_subscription(
    request: Request,
    payload: GoogleVerifyRequest,
    decoded_token: dict = Depends(verify_firebase_token),
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Verify a Google Play subscription and store the resulting entitlement."""
    require_self_access(payload.user_id, decoded_token)
    outcome = orchestrator.verify(
        PurchaseVerificationRequest(
            platform=GOOGLE_PLAY,
            product_id=payload.sku_id,
            purchase_token=payload.purchase_token,
            user_id=payload.user_id,
            source=payload.source,
            package_name=payload.package_name,
        )
    )
    return VerificationResponse(**outcome.to_dict())


@router.post(
    "/verify/apple",
    response_model=VerificationResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@rate_limit_verify
def verify_apple_subscription(
    request: Request,
    payload: AppleVerifyRequest,
    decoded_token: dict = Depends(verify_firebase_token),
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Verify an App Store receipt and store the resulting entitlement."""
    require_self_access(payload.user_id, decoded_token)
    outcome = orchestrator.verify(
        PurchaseVerificationRequest(
            platform=APPLE,
            product_id=payload.sku_id,
            purchase_token=payload.purchase_token,
            user_id=payload.user_id,
            source=payload.source,
        )
    )
    return VerificationResponse(**outcome.to_dict())
