"""Expired channel mute cleanup.

A mute lives in three places: ``mutes/{muteId}`` (the index scanned here),
``channels/{channel}/mutes/{user}`` and ``users/{user}/mutes/{channel}``.
Once ``expiresAt`` has passed all three are deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.cloud import firestore

logger = logging.getLogger("api.mutes")

MUTES_COLLECTION = "mutes"


def _to_epoch_ms(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if hasattr(value, "timestamp"):
        try:
            return int(value.timestamp() * 1000)
        except Exception:
            return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


def purge_expired_mutes(db: firestore.Client, *, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete every mute whose ``expiresAt`` is before ``now``."""
    current = now or datetime.now(timezone.utc)
    now_ms = int(current.timestamp() * 1000)
    scanned = 0
    expired = 0
    skipped = 0

    for mute in db.collection(MUTES_COLLECTION).stream():
        scanned += 1
        data = mute.to_dict() or {}
        channel = str(data.get("channel") or "").strip()
        user = str(data.get("user") or "").strip()
        expires_ms = _to_epoch_ms(data.get("expiresAt"))
        if expires_ms is None:
            logger.warning("Mute %s has unreadable expiresAt=%r; skipped", mute.id, data.get("expiresAt"))
            skipped += 1
            continue
        if expires_ms >= now_ms:
            continue

        logger.info("Mute expired id=%s channel=%s user=%s", mute.id, channel, user)
        if channel and user:
            db.document(f"channels/{channel}/mutes/{user}").delete()
            db.document(f"users/{user}/mutes/{channel}").delete()
        db.document(f"{MUTES_COLLECTION}/{mute.id}").delete()
        expired += 1

    return {"scanned": scanned, "expired": expired, "skipped": skipped}
