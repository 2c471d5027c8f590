"""Firebase Cloud Messaging sender for channel subscribers."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

logger = logging.getLogger("api.push")

CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"


class PushSender:
    def __init__(self, app: Optional[Any] = None) -> None:
        self._app = app

    def build_message(
        self,
        target_devices: List[str],
        *,
        title: str,
        body: str,
        data: Dict[str, Any],
    ) -> messaging.MulticastMessage:
        # FCM data values must be strings; drop unset keys.
        payload = {key: str(value) for key, value in data.items() if value is not None}
        payload.setdefault("click_action", CLICK_ACTION)
        return messaging.MulticastMessage(
            tokens=list(target_devices),
            notification=messaging.Notification(title=title, body=body),
            data=payload,
        )

    def send(
        self,
        target_devices: List[str],
        *,
        title: str,
        body: str,
        data: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Send one notification to every device and return per-device results."""
        message = self.build_message(target_devices, title=title, body=body, data=data)
        response = messaging.send_each_for_multicast(message, app=self._app)
        results: List[Dict[str, Any]] = []
        for token, item in zip(message.tokens, response.responses):
            results.append(
                {
                    "token": token,
                    "success": bool(item.success),
                    "messageId": item.message_id,
                    "error": str(item.exception) if item.exception else None,
                }
            )
        logger.info(
            "Push sent devices=%s success=%s failure=%s",
            len(message.tokens),
            response.success_count,
            response.failure_count,
        )
        return results


def notify_subscribers(
    sender: PushSender,
    target_devices: List[str],
    *,
    title: str,
    body: str,
    data: Dict[str, Any],
) -> bool:
    """Send and report plain success; FCM failures are logged, not raised."""
    try:
        sender.send(target_devices, title=title, body=body, data=data)
    except (firebase_exceptions.FirebaseError, ValueError) as exc:
        logger.error("Push dispatch failed: %s", exc)
        return False
    return True
