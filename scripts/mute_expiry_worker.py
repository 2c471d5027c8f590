#!/usr/bin/env python3
"""Mute expiry worker.

Every poll interval (default 5 minutes) scans ``mutes`` and removes mutes
whose ``expiresAt`` has passed, together with their channel and user copies.

Usage:
    python scripts/mute_expiry_worker.py --serviceAccount /path/to/sa.json
    python scripts/mute_expiry_worker.py --once
"""

from __future__ import annotations

import argparse
import logging
import os
import socket
import time
from pathlib import Path

from firebase_admin import credentials, firestore as admin_firestore, initialize_app

from entitlement_api.config import MUTE_CHECK_POLL_SECONDS
from entitlement_api.services.mutes import purge_expired_mutes


WORKER_ID = f"mute-expiry-{socket.gethostname()}-{os.getpid()}"

logger = logging.getLogger("mute_expiry_worker")


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")


def _ensure_firebase(sa_path: str) -> None:
    try:
        initialize_app(credentials.Certificate(sa_path))
    except ValueError:
        pass


def run_worker(sa_path: str, *, poll_seconds: int, run_once: bool = False) -> None:
    _ensure_firebase(sa_path)
    db = admin_firestore.client()

    logger.info("Mute expiry worker started: worker=%s poll=%ss", WORKER_ID, poll_seconds)

    while True:
        try:
            summary = purge_expired_mutes(db)
            logger.info(
                "Mute cycle: scanned=%s expired=%s skipped=%s",
                summary["scanned"],
                summary["expired"],
                summary["skipped"],
            )
            if run_once:
                return
            time.sleep(poll_seconds)

        except KeyboardInterrupt:
            logger.info("Mute expiry worker interrupted, shutting down")
            return
        except Exception:
            logger.exception("Mute expiry worker cycle failure")
            if run_once:
                raise
            time.sleep(poll_seconds)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Expired mute cleanup worker")
    parser.add_argument(
        "--serviceAccount",
        default=os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", ""),
        help="Path to Firebase service account JSON",
    )
    parser.add_argument(
        "--poll-seconds",
        type=int,
        default=MUTE_CHECK_POLL_SECONDS,
        help="Polling interval in seconds",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one cycle and exit",
    )
    return parser.parse_args()


def main() -> int:
    configure_logging()
    args = parse_args()

    sa_path = str(args.serviceAccount or "").strip()
    if not sa_path:
        logger.error("--serviceAccount (or GOOGLE_APPLICATION_CREDENTIALS) is required")
        return 2
    if not Path(sa_path).exists():
        logger.error("Service account path does not exist: %s", sa_path)
        return 2

    run_worker(sa_path, poll_seconds=max(30, int(args.poll_seconds)), run_once=bool(args.once))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
