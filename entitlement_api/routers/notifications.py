"""Notifications router - push dispatch to channel subscribers.

Endpoints:
    POST /api/notify-subscribers - Send one notification to a list of devices
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_push_sender, verify_firebase_token
from ..middleware.rate_limit import rate_limit_write
from ..models import ErrorResponse, NotifySubscribersRequest, NotifySubscribersResponse
from ..services.push import PushSender, notify_subscribers

router = APIRouter()
logger = logging.getLogger("api.routers.notifications")


@router.post(
    "/notify-subscribers",
    response_model=NotifySubscribersResponse,
    responses={401: {"model": ErrorResponse}},
)
@rate_limit_write
def notify_channel_subscribers(
    request: Request,
    payload: NotifySubscribersRequest,
    decoded_token: dict = Depends(verify_firebase_token),
    sender: PushSender = Depends(get_push_sender),
):
    logger.info(
        "Notify subscribers uid=%s devices=%s type=%s channel=%s",
        decoded_token.get("uid"),
        len(payload.targetDevices),
        payload.notification_type,
        payload.channel,
    )
    ok = notify_subscribers(
        sender,
        payload.targetDevices,
        title=payload.messageTitle,
        body=payload.messageBody,
        data={
            "notification_type": payload.notification_type,
            "user": payload.user,
            "channel": payload.channel,
        },
    )
    return NotifySubscribersResponse(ok=ok)
