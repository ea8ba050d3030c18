"""
Unit tests for API v1 routes.

Routes run against the real domain services wired to in-memory fakes
through dependency overrides; no database or network is used.
"""

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import get_password_reset_service, get_usage_service
from src.api.main import app as main_app
from src.config.settings import Settings, get_settings
from src.domain.password_reset import PasswordResetService
from src.domain.ports import ErrorKind
from src.domain.results import Failure

EMAIL = "student@example.com"


@pytest.fixture
def app(service, usage_service) -> Iterator[FastAPI]:
    """Application with services overridden and codes echoed in responses."""
    main_app.dependency_overrides[get_password_reset_service] = lambda: service
    main_app.dependency_overrides[get_usage_service] = lambda: usage_service
    main_app.dependency_overrides[get_settings] = lambda: Settings(expose_code_in_response=True)
    yield main_app
    main_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; the lifespan is not entered, so no pool is created."""
    return TestClient(app)


def request_code(client: TestClient, email: str = EMAIL):
    return client.post("/v1/password-reset/request", json={"email": email})


class TestRequestCodeEndpoint:
    """Tests for POST /v1/password-reset/request."""

    def test_success_returns_code_data(self, client: TestClient) -> None:
        """Issued code is described with camelCase fields."""
        response = request_code(client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Verification code sent successfully"
        assert body["data"]["email"] == EMAIL
        assert body["data"]["verificationCode"].startswith("SMCBI-")
        assert body["data"]["expiresAt"].startswith("2026-03-02T09:15:00")
        assert body["data"]["emailId"] == "msg-1"

    def test_code_hidden_by_default(self, app: FastAPI, client: TestClient) -> None:
        """Without the echo setting the code is never returned."""
        app.dependency_overrides[get_settings] = lambda: Settings()

        response = request_code(client)

        assert response.status_code == 200
        assert response.json()["data"]["verificationCode"] is None

    def test_fourth_request_returns_429(self, client: TestClient) -> None:
        """Rate limit maps to 429 with the standard error body."""
        for _ in range(3):
            assert request_code(client).status_code == 200

        response = request_code(client)

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "rate_limited"
        assert "maximum number of password reset requests" in body["message"]

    def test_unknown_user_returns_404(self, client: TestClient) -> None:
        """Unknown email maps to 404."""
        response = request_code(client, "nobody@example.com")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "not_found",
            "message": "User not found",
        }

    def test_invalid_email_returns_400(self, client: TestClient) -> None:
        """Malformed request bodies use the error envelope with 400."""
        response = request_code(client, "not-an-email")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"

    def test_missing_email_returns_400(self, client: TestClient) -> None:
        """Missing fields are validation errors."""
        response = client.post("/v1/password-reset/request", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email"

    def test_email_failure_returns_503(self, client: TestClient, email_sender) -> None:
        """Provider failure maps to 503."""
        email_sender.fail = True

        response = request_code(client)

        assert response.status_code == 503
        assert response.json()["error"] == "dependency_unavailable"


class TestVerifyEndpoint:
    """Tests for POST /v1/password-reset/verify."""

    def test_verify_success(self, client: TestClient, email_sender) -> None:
        """Correct code returns the verification id."""
        request_code(client)

        response = client.post(
            "/v1/password-reset/verify",
            json={"email": EMAIL, "code": email_sender.last_code.lower()},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == EMAIL
        assert data["verificationId"]
        assert data["verifiedAt"].startswith("2026-03-02T09:00:00")

    def test_wrong_code_returns_404(self, client: TestClient) -> None:
        """Unknown code maps to 404."""
        request_code(client)

        response = client.post(
            "/v1/password-reset/verify", json={"email": EMAIL, "code": "SMCBI-000000x"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_bad_format_returns_400(self, client: TestClient) -> None:
        """Wrong prefix maps to 400."""
        response = client.post(
            "/v1/password-reset/verify", json={"email": EMAIL, "code": "123456"}
        )

        assert response.status_code == 400
        assert "SMCBI-######" in response.json()["message"]

    def test_expired_returns_410(self, client: TestClient, email_sender, clock) -> None:
        """Expired code maps to 410."""
        request_code(client)
        clock.advance(minutes=16)

        response = client.post(
            "/v1/password-reset/verify", json={"email": EMAIL, "code": email_sender.last_code}
        )

        assert response.status_code == 410
        assert response.json()["error"] == "expired"

    def test_attempts_exceeded_returns_423(self, app: FastAPI) -> None:
        """Attempt exhaustion maps to 423."""
        mock_service = MagicMock(spec=PasswordResetService)
        mock_service.verify.return_value = Failure(
            ErrorKind.ATTEMPTS_EXCEEDED, "Maximum verification attempts exceeded"
        )
        app.dependency_overrides[get_password_reset_service] = lambda: mock_service

        response = TestClient(app).post(
            "/v1/password-reset/verify", json={"email": EMAIL, "code": "SMCBI-123456"}
        )

        assert response.status_code == 423
        mock_service.verify.assert_called_once_with(EMAIL, "SMCBI-123456")


class TestConfirmEndpoint:
    """Tests for POST /v1/password-reset/confirm."""

    def test_full_flow(self, client: TestClient, email_sender, identities) -> None:
        """Request, verify and confirm change the password once."""
        request_code(client)
        client.post(
            "/v1/password-reset/verify", json={"email": EMAIL, "code": email_sender.last_code}
        )

        response = client.post(
            "/v1/password-reset/confirm", json={"email": EMAIL, "newPassword": "s3cure!"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Password reset successfully"
        assert body["data"]["user"] == {"id": "profile-1", "email": EMAIL}
        assert body["data"]["method"] is None
        assert identities.passwords == {"auth-1": "s3cure!"}

        again = client.post(
            "/v1/password-reset/confirm", json={"email": EMAIL, "newPassword": "s3cure!"}
        )
        assert again.status_code == 404

    def test_short_password_returns_400(self, client: TestClient) -> None:
        """Domain password rule maps to 400."""
        response = client.post(
            "/v1/password-reset/confirm", json={"email": EMAIL, "newPassword": "123"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters long"

    def test_over_long_password_returns_400(self, client: TestClient) -> None:
        """Passwords over 72 characters are rejected with the error envelope."""
        response = client.post(
            "/v1/password-reset/confirm", json={"email": EMAIL, "newPassword": "x" * 73}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unexpected_failure_returns_500(self, app: FastAPI) -> None:
        """UNKNOWN maps to 500 with a generic message."""
        mock_service = MagicMock(spec=PasswordResetService)
        mock_service.reset_password.return_value = Failure(
            ErrorKind.UNKNOWN, "Unknown error occurred"
        )
        app.dependency_overrides[get_password_reset_service] = lambda: mock_service

        response = TestClient(app).post(
            "/v1/password-reset/confirm", json={"email": EMAIL, "newPassword": "s3cure!"}
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "unknown",
            "message": "Unknown error occurred",
        }


class TestEmailUsageEndpoint:
    """Tests for GET /v1/email-usage."""

    def test_usage_report(self, client: TestClient) -> None:
        """Counts reflect issued codes with camelCase field names."""
        request_code(client)
        request_code(client)

        response = client.get("/v1/email-usage")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {
                "totalEmailsSent": 2,
                "emailsLastDay": 2,
                "emailsLast30Days": 2,
                "quotaLimit": 3000,
                "quotaRemaining": 2998,
                "quotaUsagePercent": "0.07",
            },
        }

    def test_usage_store_down_returns_503(self, client: TestClient, code_repository) -> None:
        """Store outage maps to 503."""
        code_repository.failing.add("count_all")

        response = client.get("/v1/email-usage")

        assert response.status_code == 503


class TestHealthEndpoint:
    """Tests for GET /health."""

    @pytest.fixture
    def healthy_state(self, app: FastAPI, identities, monkeypatch):
        app.state.pool = MagicMock()
        monkeypatch.setattr("src.api.main.get_identity_provider", lambda request: identities)
        return app

    def test_healthy(self, healthy_state: FastAPI, client: TestClient) -> None:
        """Reachable database and identity provider report healthy."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_database_down(self, healthy_state: FastAPI, client: TestClient) -> None:
        """Database failure reports 503 naming the component."""
        healthy_state.state.pool.connection.side_effect = Exception("refused")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["component"] == "database"

    def test_identity_provider_down(
        self, healthy_state: FastAPI, client: TestClient, identities
    ) -> None:
        """Identity provider failure reports 503 naming the component."""
        identities.unavailable = True

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["component"] == "identity_provider"
