"""Persist an entitlement decision onto ``users/{userId}``."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from .results import PREMIUM, EntitlementDecision, PersistenceError

logger = logging.getLogger("api.entitlement_writer")

USERS_COLLECTION = "users"


def entitlement_fields(
    decision: EntitlementDecision,
    *,
    sku_id: Optional[str],
    purchase_token: Optional[str],
    source: Optional[str],
) -> Dict[str, Any]:
    """All four entitlement fields; FREE records never keep vendor identifiers."""
    if decision.package == PREMIUM:
        return {
            "skuId": sku_id,
            "purchaseToken": purchase_token,
            "source": source,
            "subscriptionPackage": PREMIUM,
        }
    return {
        "skuId": firestore.DELETE_FIELD,
        "purchaseToken": firestore.DELETE_FIELD,
        "source": source,
        "subscriptionPackage": decision.package,
    }


class EntitlementWriter:
    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def snapshot_update_time(self, user_id: str):
        """Return the user document's current update time, or None if missing."""
        snapshot = self._db.collection(USERS_COLLECTION).document(user_id).get()
        if not snapshot.exists:
            return None
        return snapshot.update_time

    def apply(
        self,
        user_id: str,
        decision: EntitlementDecision,
        sku_id: Optional[str],
        purchase_token: Optional[str],
        source: Optional[str],
        *,
        last_update_time: Any = None,
    ) -> None:
        """Overwrite the entitlement fields in a single update.

        With ``last_update_time`` the update only lands if the document has
        not changed since then.
        """
        fields = entitlement_fields(
            decision,
            sku_id=sku_id,
            purchase_token=purchase_token,
            source=source,
        )
        doc_ref = self._db.collection(USERS_COLLECTION).document(user_id)
        try:
            if last_update_time is not None:
                doc_ref.update(fields, option=self._db.write_option(last_update_time=last_update_time))
            else:
                doc_ref.update(fields)
        except gcp_exceptions.NotFound as exc:
            raise PersistenceError(
                f"User document users/{user_id} does not exist",
                user_id=user_id,
                code="USER_NOT_FOUND",
            ) from exc
        except (gcp_exceptions.FailedPrecondition, gcp_exceptions.Aborted) as exc:
            raise PersistenceError(
                f"User document users/{user_id} changed during verification",
                user_id=user_id,
                code="WRITE_CONFLICT",
            ) from exc
        except gcp_exceptions.GoogleAPICallError as exc:
            raise PersistenceError(
                f"Failed to update users/{user_id}: {exc}",
                user_id=user_id,
            ) from exc
        except gcp_exceptions.RetryError as exc:
            raise PersistenceError(
                f"Firestore unreachable while updating users/{user_id}",
                user_id=user_id,
                code="STORE_UNREACHABLE",
            ) from exc

        logger.info(
            "EntitlementWrite user=%s package=%s reason=%s source=%s conditional=%s",
            user_id,
            decision.package,
            decision.reason,
            source,
            last_update_time is not None,
        )
