"""Integration tests for GET/PATCH /api/extension/profile.

Covers:
- 401/404/500 error bodies ({"error": ..., "debug_id": ...})
- First-fetch scenario for a user with no billing ids and no stored profile
- Stripe failure still answering 200
- PATCH partial-update semantics over HTTP
"""

import uuid
from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import ClerkUser, require_auth
from app.core.exceptions import BillingProviderError, IdentityProviderError

pytestmark = pytest.mark.integration

PROFILE_URL = "/api/extension/profile"


def override_auth(user: ClerkUser):
    """Dependency override factory for require_auth."""

    async def _override():
        return user

    return _override


@pytest.fixture
def authed_client(api_client: TestClient) -> TestClient:
    app: FastAPI = api_client.app
    app.dependency_overrides[require_auth] = override_auth(ClerkUser(user_id="u1", claims={"sub": "u1"}))
    yield api_client
    app.dependency_overrides.pop(require_auth, None)


def _assert_error(response, status_code: int, message: str) -> None:
    assert response.status_code == status_code
    body = response.json()
    assert body["error"] == message
    uuid.UUID(body["debug_id"])


class TestGetProfile:
    def test_unauthenticated_returns_401(self, api_client: TestClient):
        _assert_error(api_client.get(PROFILE_URL), 401, "Unauthorized")

    def test_first_fetch_without_billing_ids(self, authed_client: TestClient):
        response = authed_client.get(PROFILE_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["user"] == {
            "id": "u1",
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "imageUrl": "https://img.clerk.com/ada.png",
        }
        assert body["profile"] == {
            "subscriptionTier": "free_trial",
            "subscriptionStatus": "trial",
            "termsAccepted": False,
            "extensionEnabled": None,
            "settings": None,
        }
        assert body["usage"]["tokensUsed"] == 0
        assert body["usage"]["requestsMade"] == 0
        assert body["usage"]["costAccrued"] == 0
        assert body["extensionSessions"] == 0
        assert body["lastActiveSession"] is None

    def test_repeat_fetch_is_stable(self, authed_client: TestClient):
        first = authed_client.get(PROFILE_URL).json()
        second = authed_client.get(PROFILE_URL).json()
        assert first == second

    def test_unknown_clerk_user_returns_404(self, authed_client: TestClient, clerk_mock):
        clerk_mock.get_user.return_value = None

        _assert_error(authed_client.get(PROFILE_URL), 404, "User not found")

    def test_clerk_outage_returns_500(self, authed_client: TestClient, clerk_mock):
        clerk_mock.get_user.side_effect = IdentityProviderError("Clerk API error (502)")

        _assert_error(authed_client.get(PROFILE_URL), 500, "Internal server error")

    def test_unexpected_error_returns_generic_500(self, authed_client: TestClient, clerk_mock):
        clerk_mock.get_user.side_effect = RuntimeError("database password=hunter2")

        response = authed_client.get(PROFILE_URL)

        _assert_error(response, 500, "Internal server error")
        assert "hunter2" not in response.text

    def test_stripe_failure_still_returns_200(self, authed_client: TestClient, clerk_mock, clerk_user, billing_mock):
        clerk_mock.get_user.return_value = replace(
            clerk_user,
            private_metadata={"stripeCustomerId": "cus_1", "stripeSubscriptionId": "sub_1"},
        )
        billing_mock.get_subscription.side_effect = BillingProviderError("Stripe unreachable")

        response = authed_client.get(PROFILE_URL)

        assert response.status_code == 200
        assert response.json()["profile"]["subscriptionTier"] == "FREE"
        assert response.json()["profile"]["subscriptionStatus"] == "ACTIVE"


class TestPatchProfile:
    def test_unauthenticated_returns_401(self, api_client: TestClient):
        _assert_error(api_client.patch(PROFILE_URL, json={"extensionEnabled": True}), 401, "Unauthorized")

    def test_missing_profile_returns_404_without_creating(self, authed_client: TestClient):
        _assert_error(
            authed_client.patch(PROFILE_URL, json={"extensionEnabled": True}),
            404,
            "Profile not found",
        )
        # Still absent: a second PATCH fails the same way
        assert authed_client.patch(PROFILE_URL, json={}).status_code == 404

    def test_updates_settings_and_flag(self, authed_client: TestClient):
        authed_client.get(PROFILE_URL)

        response = authed_client.patch(
            PROFILE_URL,
            json={"settings": {"theme": "dark"}, "extensionEnabled": True},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["profile"]["clerkUserId"] == "u1"
        assert body["profile"]["settings"] == {"theme": "dark"}
        assert body["profile"]["extensionEnabled"] is True
        assert body["profile"]["subscriptionTier"] == "FREE"

        profile = authed_client.get(PROFILE_URL).json()["profile"]
        assert profile["settings"] == {"theme": "dark"}
        assert profile["extensionEnabled"] is True

    def test_wrongly_typed_extension_enabled_is_ignored(self, authed_client: TestClient):
        authed_client.get(PROFILE_URL)
        authed_client.patch(PROFILE_URL, json={"extensionEnabled": False})

        response = authed_client.patch(PROFILE_URL, json={"extensionEnabled": "yes"})

        assert response.status_code == 200
        record = response.json()["profile"]
        assert record["extensionEnabled"] is False
        assert record["updatedAt"] >= record["createdAt"]


class TestAmbientEndpoints:
    def test_health(self, api_client: TestClient):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_checks_database(self, api_client: TestClient):
        response = api_client.get("/api/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True}

    def test_correlation_id_echoed(self, api_client: TestClient):
        response = api_client.get("/api/health", headers={"X-Request-ID": "ext-req-42"})
        assert response.headers["x-request-id"] == "ext-req-42"

    def test_correlation_id_generated(self, api_client: TestClient):
        response = api_client.get("/api/health")
        uuid.UUID(response.headers["x-request-id"])
