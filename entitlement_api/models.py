"""Pydantic request/response models for the entitlement API.

Request field names match what the mobile clients already send
(snake_case for verification, camelCase for notifications).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# VERIFICATION
# =============================================================================

class GoogleVerifyRequest(BaseModel):
    """Google Play subscription verification input."""
    sku_id: str = Field(..., min_length=1, max_length=255)
    purchase_token: str = Field(..., min_length=1, max_length=4096)
    package_name: Optional[str] = Field(default=None, max_length=255)
    user_id: str = Field(..., min_length=1, max_length=128)
    source: Optional[str] = Field(default=None, max_length=64)


class AppleVerifyRequest(BaseModel):
    """App Store receipt verification input; ``purchase_token`` is the base64 receipt."""
    sku_id: str = Field(..., min_length=1, max_length=255)
    purchase_token: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, max_length=128)
    source: Optional[str] = Field(default=None, max_length=64)


class VerificationResponse(BaseModel):
    status: int
    message: str


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotifySubscribersRequest(BaseModel):
    targetDevices: List[str] = Field(..., min_length=1, max_length=500)
    messageTitle: str = Field(..., max_length=256)
    messageBody: str = Field(..., max_length=4096)
    notification_type: Optional[str] = None
    user: Optional[str] = None
    channel: Optional[str] = None


class NotifySubscribersResponse(BaseModel):
    ok: bool


# =============================================================================
# ERRORS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    code: str
    detail: Optional[str] = None
