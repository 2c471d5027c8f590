"""Subscription Entitlement API.

FastAPI backend that verifies Google Play and App Store subscriptions and
keeps ``users/{userId}.subscriptionPackage`` in Firestore in sync:
- Google Play subscription verification (Play Developer API)
- App Store receipt verification with sandbox fallback
- Push dispatch to channel subscribers (Firebase Cloud Messaging)

Security: Firebase Auth tokens required for all endpoints except /api/health.
"""
