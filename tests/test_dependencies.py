"""Provider wiring and Firebase token checks."""
from __future__ import annotations

import json
import time

import pytest
from fastapi.testclient import TestClient

from entitlement_api import config, dependencies
from entitlement_api.main import app
from entitlement_api.middleware.rate_limit import limiter
from entitlement_api.verification import APPLE, GOOGLE_PLAY, EntitlementWriter, PurchaseVerificationRequest, VerificationOutcome
from entitlement_api.verification.orchestrator import FAILURE_MESSAGE, SUCCESS_MESSAGE

FAR_FUTURE_MS = 4_102_444_800_000


@pytest.fixture
def malformed_play_account(tmp_path, monkeypatch):
    path = tmp_path / "play-service-account.json"
    path.write_text(json.dumps({"type": "service_account"}))
    monkeypatch.setattr(config, "GOOGLE_PLAY_SERVICE_ACCOUNT", str(path))
    monkeypatch.setattr(config, "APPLE_SHARED_SECRET", "shared-secret")
    dependencies.get_play_client.cache_clear()
    yield path
    dependencies.get_play_client.cache_clear()


def _orchestrator(db):
    return dependencies.get_orchestrator(
        play_client=dependencies.get_play_client(),
        appstore_client=dependencies.get_appstore_client(),
        writer=EntitlementWriter(db),
    )


def test_malformed_play_account_yields_no_client(malformed_play_account) -> None:
    assert dependencies.get_play_client() is None


def test_apple_verification_survives_malformed_play_account(malformed_play_account, fake_db, transport) -> None:
    transport.queue({"status": 0, "latest_receipt_info": [{"expires_date_ms": str(FAR_FUTURE_MS)}]})
    request = PurchaseVerificationRequest(
        platform=APPLE,
        product_id="premium.monthly",
        purchase_token="base64-receipt",
        user_id="user-1",
        source="ios",
    )

    outcome = _orchestrator(fake_db).verify(request)

    assert outcome == VerificationOutcome(200, SUCCESS_MESSAGE)
    assert fake_db.docs["users/user-1"]["subscriptionPackage"] == "PREMIUM"


def test_play_verification_fails_closed_with_malformed_account(malformed_play_account, fake_db, transport) -> None:
    request = PurchaseVerificationRequest(
        platform=GOOGLE_PLAY,
        product_id="premium.monthly",
        purchase_token="play-token-0123456789",
        user_id="user-1",
        package_name="com.example.app",
    )

    outcome = _orchestrator(fake_db).verify(request)

    assert outcome == VerificationOutcome(401, FAILURE_MESSAGE)
    assert transport.requests == []
    assert fake_db.docs["users/user-1"]["subscriptionPackage"] == "FREE"


@pytest.fixture
def token_client(monkeypatch, fake_db):
    issued = {"iat": int(time.time())}
    monkeypatch.setattr(config, "SKIP_TOKEN_AGE_CHECK", False)
    monkeypatch.setattr(config, "APPLE_SHARED_SECRET", "shared-secret")
    monkeypatch.setattr(dependencies, "get_firebase_app", lambda: None)
    monkeypatch.setattr(
        dependencies.auth,
        "verify_id_token",
        lambda token, check_revoked=False: {"uid": "user-1", "iat": issued["iat"]},
    )
    previous = limiter.enabled
    limiter.enabled = False
    app.dependency_overrides[dependencies.get_orchestrator] = lambda: _orchestrator(fake_db)
    yield TestClient(app), issued
    app.dependency_overrides.clear()
    limiter.enabled = previous


APPLE_BODY = {"sku_id": "premium.monthly", "purchase_token": "base64-receipt", "user_id": "user-1", "source": "ios"}
AUTH = {"Authorization": "Bearer id-token"}


def test_fresh_token_is_accepted(token_client, transport) -> None:
    client, _ = token_client
    transport.queue({"status": 0, "latest_receipt_info": [{"expires_date_ms": str(FAR_FUTURE_MS)}]})

    response = client.post("/api/verify/apple", json=APPLE_BODY, headers=AUTH)

    assert response.status_code == 200
    assert response.json()["status"] == 200


def test_token_older_than_max_age_is_rejected(token_client, transport) -> None:
    client, issued = token_client
    issued["iat"] = int(time.time()) - config.MAX_TOKEN_AGE_SECONDS - 60

    response = client.post("/api/verify/apple", json=APPLE_BODY, headers=AUTH)

    assert response.status_code == 401
    assert transport.requests == []


def test_token_from_the_future_is_rejected(token_client, transport) -> None:
    client, issued = token_client
    issued["iat"] = int(time.time()) + config.CLOCK_SKEW_SECONDS + 60

    response = client.post("/api/verify/apple", json=APPLE_BODY, headers=AUTH)

    assert response.status_code == 401
