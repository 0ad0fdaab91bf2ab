from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from app.api.routes import internal_commerce_helpers, internal_users
from app.economy.purchases.errors import UserNotFoundError
from app.economy.referrals.errors import ReferralCodeGenerationExhaustedError
from app.economy.referrals.service import ReferralDashboard, ReferralStats, ReferredUserSummary
from app.main import app
from app.services.user_onboarding import SyncedUser

TOKEN = "internal-secret"
HEADERS = {"X-Internal-Token": TOKEN}


class _FakeTransaction:
    async def __aenter__(self) -> SimpleNamespace:
        return SimpleNamespace()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


@pytest.fixture(autouse=True)
def _internal_settings(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_commerce_helpers,
        "get_settings",
        lambda: SimpleNamespace(internal_api_token=TOKEN),
    )
    monkeypatch.setattr(
        internal_users,
        "SessionLocal",
        SimpleNamespace(begin=lambda: _FakeTransaction()),
    )


def _synced(*, created: bool, referral_status: str | None) -> SyncedUser:
    return SyncedUser(
        user=SimpleNamespace(
            id=2,
            external_id="ext-bob",
            name="Bob",
            referral_code="BOB23456",
            credit_balance=0,
        ),
        created=created,
        referral_status=referral_status,
    )


def test_sync_user_rejects_wrong_token() -> None:
    client = TestClient(app)
    response = client.post(
        "/internal/users/sync",
        json={"external_id": "ext-bob", "name": "Bob"},
        headers={"X-Internal-Token": "wrong"},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_sync_user_creates_user_with_pending_referral(monkeypatch) -> None:
    captured: dict[str, object] = {}

    async def _sync(session, **kwargs):
        captured.update(kwargs)
        return _synced(created=True, referral_status="PENDING")

    monkeypatch.setattr(internal_users.UserOnboardingService, "sync_user", _sync)

    client = TestClient(app)
    response = client.post(
        "/internal/users/sync",
        json={"external_id": "ext-bob", "name": "Bob", "referral_code": "alice234"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert captured["referral_code"] == "alice234"
    assert response.json() == {
        "id": 2,
        "external_id": "ext-bob",
        "name": "Bob",
        "referral_code": "BOB23456",
        "credits": 0,
        "created": True,
        "referral_status": "PENDING",
    }


def test_sync_user_retries_once_after_concurrent_insert(monkeypatch) -> None:
    attempts: list[int] = []

    async def _sync(session, **kwargs):
        attempts.append(1)
        if len(attempts) == 1:
            raise IntegrityError("INSERT INTO users", {}, Exception("uq_users_external_id"))
        return _synced(created=False, referral_status=None)

    monkeypatch.setattr(internal_users.UserOnboardingService, "sync_user", _sync)

    client = TestClient(app)
    response = client.post(
        "/internal/users/sync",
        json={"external_id": "ext-bob", "name": "Bob"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["created"] is False
    assert len(attempts) == 2


def test_sync_user_maps_code_exhaustion_to_503(monkeypatch) -> None:
    async def _sync(session, **kwargs):
        raise ReferralCodeGenerationExhaustedError("no code")

    monkeypatch.setattr(internal_users.UserOnboardingService, "sync_user", _sync)

    client = TestClient(app)
    response = client.post(
        "/internal/users/sync",
        json={"external_id": "ext-bob", "name": "Bob"},
        headers=HEADERS,
    )

    assert response.status_code == 503
    assert response.json() == {"detail": {"code": "E_REFERRAL_CODE_EXHAUSTED"}}


def test_get_referral_stats_lists_referred_users(monkeypatch) -> None:
    referred_at = datetime(2026, 2, 1, tzinfo=timezone.utc)

    async def _get_user(session, external_id: str):
        return SimpleNamespace(id=1)

    async def _stats(session, *, referrer_user_id: int):
        return ReferralStats(
            referrer_user_id=referrer_user_id,
            total_referred=1,
            converted_users=0,
            referred_users=[
                ReferredUserSummary(
                    user_id=2,
                    name="Bob",
                    status="PENDING",
                    referred_at=referred_at,
                    converted_at=None,
                )
            ],
        )

    monkeypatch.setattr(internal_users.UsersRepo, "get_by_external_id", _get_user)
    monkeypatch.setattr(internal_users.ReferralService, "get_referral_stats", _stats)

    client = TestClient(app)
    response = client.get("/internal/users/ext-alice/referrals", headers=HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_referred"] == 1
    assert payload["converted_users"] == 0
    assert payload["referred_users"][0]["name"] == "Bob"
    assert payload["referred_users"][0]["status"] == "PENDING"


def test_get_referral_stats_returns_404_for_unknown_user(monkeypatch) -> None:
    async def _get_user(session, external_id: str):
        return None

    monkeypatch.setattr(internal_users.UsersRepo, "get_by_external_id", _get_user)

    client = TestClient(app)
    response = client.get("/internal/users/ghost/referrals", headers=HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_USER_NOT_FOUND"}}


def test_get_dashboard_returns_summary(monkeypatch) -> None:
    async def _dashboard(session, *, external_id: str, frontend_url: str):
        return ReferralDashboard(
            name="Alice",
            total_referred_users=4,
            converted_users=3,
            total_credits_earned=6,
            current_balance=6,
            referral_code="ALICE234",
            referral_link=f"{frontend_url}/register?r=ALICE234",
        )

    monkeypatch.setattr(internal_users.ReferralService, "get_dashboard", _dashboard)
    monkeypatch.setattr(
        internal_users,
        "get_settings",
        lambda: SimpleNamespace(frontend_url="https://shop.example.com"),
    )

    client = TestClient(app)
    response = client.get("/internal/users/ext-alice/dashboard", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "name": "Alice",
        "total_referred_users": 4,
        "converted_users": 3,
        "total_credits_earned": 6,
        "current_balance": 6,
        "referral_link": "https://shop.example.com/register?r=ALICE234",
        "referral_code": "ALICE234",
    }


def test_get_dashboard_returns_404_for_unknown_user(monkeypatch) -> None:
    async def _dashboard(session, **kwargs):
        raise UserNotFoundError

    monkeypatch.setattr(internal_users.ReferralService, "get_dashboard", _dashboard)

    client = TestClient(app)
    response = client.get("/internal/users/ghost/dashboard", headers=HEADERS)

    assert response.status_code == 404
