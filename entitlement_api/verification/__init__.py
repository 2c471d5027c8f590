"""Subscription entitlement verification against Google Play and the App Store."""

from .appstore import AppStoreReceiptClient
from .evaluator import decide
from .orchestrator import VerificationOrchestrator
from .play import PlayBillingClient
from .results import (
    APPLE,
    FREE,
    GOOGLE_PLAY,
    PREMIUM,
    EntitlementDecision,
    Invalid,
    PersistenceError,
    PurchaseVerificationRequest,
    TransientFailure,
    Valid,
    VerificationOutcome,
)
from .writer import EntitlementWriter

__all__ = [
    'APPLE',
    'FREE',
    'GOOGLE_PLAY',
    'PREMIUM',
    'AppStoreReceiptClient',
    'EntitlementDecision',
    'EntitlementWriter',
    'Invalid',
    'PersistenceError',
    'PlayBillingClient',
    'PurchaseVerificationRequest',
    'TransientFailure',
    'Valid',
    'VerificationOrchestrator',
    'VerificationOutcome',
    'decide',
]
