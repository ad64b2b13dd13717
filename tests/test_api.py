"""
Tests for the REST API.

Covers:
- Registration and login endpoints
- TOTP setup / verify / status / disable
- Bearer token handling
- Error responses and security headers
"""
import time

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.deps import get_auth_service
from src.auth import mfa
from src.auth.errors import DecryptionFailure


def register_and_login(client, email="alice@example.com", password="pw123456"):
    client.post("/auth/register", json={"email": email, "password": password})
    response = client.post("/auth/login", json={"email": email, "password": password})
    return response.json()["access_token"]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def rejected_code(secret):
    now = time.time()
    nearby = {
        mfa.get_current_totp(secret, for_time=now + i * mfa.TIME_STEP)
        for i in range(-6, 7)
    }
    return next(str(d) * 6 for d in range(10) if str(d) * 6 not in nearby)


@pytest.fixture
def token(client):
    return register_and_login(client)


# ============================================
# Registration & Login
# ============================================

class TestRegister:

    def test_register(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "alice@example.com", "password": "pw123456"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["user_id"]

    def test_duplicate(self, client):
        body = {"email": "alice@example.com", "password": "pw123456"}
        client.post("/auth/register", json=body)
        response = client.post("/auth/register", json=body)

        assert response.status_code == 409
        assert response.json()["error"] == "User already exists"

    def test_short_password(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "alice@example.com", "password": "short"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_invalid_email(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "not-an-email", "password": "pw123456"},
        )
        assert response.status_code == 422


class TestLogin:

    def test_login(self, client):
        client.post("/auth/register", json={"email": "alice@example.com", "password": "pw123456"})
        response = client.post(
            "/auth/login",
            json={"email": "alice@example.com", "password": "pw123456"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "alice@example.com"
        assert data["totp_enabled"] is False

    def test_bad_credentials_are_uniform(self, client):
        client.post("/auth/register", json={"email": "alice@example.com", "password": "pw123456"})

        wrong_password = client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "nope"}
        )
        unknown_email = client.post(
            "/auth/login", json={"email": "bob@example.com", "password": "pw123456"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()


# ============================================
# Protected Endpoints
# ============================================

class TestBearerToken:

    def test_me(self, client, token):
        response = client.get("/user/me", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "alice@example.com"
        assert data["totp_enabled"] is False

    def test_missing_token(self, client):
        response = client.get("/user/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token required"

    def test_invalid_token(self, client):
        response = client.get("/user/me", headers=auth_header("garbage"))
        assert response.status_code == 401
        assert response.headers.get("WWW-Authenticate") == "Bearer"


# ============================================
# MFA Flow
# ============================================

class TestMFAFlow:

    def test_full_enrollment_and_login(self, client, token):
        status = client.get("/mfa/totp/status", headers=auth_header(token)).json()
        assert status["setup_required"] is True

        setup = client.post("/mfa/totp/setup", headers=auth_header(token))
        assert setup.status_code == 200
        enrollment = setup.json()
        assert enrollment["qr_code"].startswith("data:image/png;base64,")
        assert len(enrollment["backup_codes"]) == 8
        secret = enrollment["manual_entry_key"]

        status = client.get("/mfa/totp/status", headers=auth_header(token)).json()
        assert status == {
            "enabled": False,
            "verified": False,
            "setup_required": False,
            "backup_codes_remaining": 8,
        }

        verify = client.post(
            "/mfa/totp/verify",
            headers=auth_header(token),
            json={"code": mfa.get_current_totp(secret)},
        )
        assert verify.status_code == 200
        assert verify.json()["success"] is True

        login = client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "pw123456"}
        ).json()
        assert login["success"] is False
        assert login["requires_totp"] is True
        assert login["access_token"] is None

        login = client.post(
            "/auth/login",
            json={
                "email": "alice@example.com",
                "password": "pw123456",
                "totp_code": mfa.get_current_totp(secret),
            },
        ).json()
        assert login["success"] is True
        assert login["totp_enabled"] is True

        me = client.get("/user/me", headers=auth_header(login["access_token"])).json()
        assert me["totp_enabled"] is True
        assert me["totp_verified"] is True

    def test_verify_wrong_code(self, client, token):
        secret = client.post("/mfa/totp/setup", headers=auth_header(token)).json()["manual_entry_key"]

        response = client.post(
            "/mfa/totp/verify",
            headers=auth_header(token),
            json={"code": rejected_code(secret)},
        )
        assert response.status_code == 401
        assert response.json() == {
            "error": "Invalid code",
            "detail": "Invalid code",
            "code": "INVALID_CODE",
        }

    def test_verify_without_setup(self, client, token):
        response = client.post(
            "/mfa/totp/verify", headers=auth_header(token), json={"code": "123456"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "TOTP not set up"

    def test_login_with_wrong_totp(self, client, token):
        secret = client.post("/mfa/totp/setup", headers=auth_header(token)).json()["manual_entry_key"]
        client.post(
            "/mfa/totp/verify",
            headers=auth_header(token),
            json={"code": mfa.get_current_totp(secret)},
        )

        response = client.post(
            "/auth/login",
            json={
                "email": "alice@example.com",
                "password": "pw123456",
                "totp_code": rejected_code(secret),
            },
        )
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CODE"

    def test_disable(self, client, token):
        secret = client.post("/mfa/totp/setup", headers=auth_header(token)).json()["manual_entry_key"]
        client.post(
            "/mfa/totp/verify",
            headers=auth_header(token),
            json={"code": mfa.get_current_totp(secret)},
        )

        response = client.post("/mfa/totp/disable", headers=auth_header(token))
        assert response.status_code == 200

        status = client.get("/mfa/totp/status", headers=auth_header(token)).json()
        assert status["setup_required"] is True

        login = client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "pw123456"}
        ).json()
        assert login["success"] is True

    def test_setup_twice_when_active(self, client, token):
        secret = client.post("/mfa/totp/setup", headers=auth_header(token)).json()["manual_entry_key"]
        client.post(
            "/mfa/totp/verify",
            headers=auth_header(token),
            json={"code": mfa.get_current_totp(secret)},
        )

        response = client.post("/mfa/totp/setup", headers=auth_header(token))
        assert response.status_code == 400
        assert response.json()["code"] == "MFA_ALREADY_ENABLED"


# ============================================
# Error Handling & Headers
# ============================================

class TestErrorHandling:

    def test_decryption_failure_is_opaque(self, service):
        mock_service = MagicMock(wraps=service)
        mock_service.login.side_effect = DecryptionFailure()
        app.dependency_overrides[get_auth_service] = lambda: mock_service

        try:
            client = TestClient(app)
            response = client.post(
                "/auth/login",
                json={"email": "alice@example.com", "password": "pw123456"},
            )

            assert response.status_code == 500
            assert response.json()["code"] == "INTERNAL_ERROR"
        finally:
            app.dependency_overrides.clear()


class TestSecurityHeaders:

    def test_security_headers_present(self, client):
        response = client.get("/health")

        assert response.headers.get("X-Frame-Options") == "DENY"
        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("Cache-Control") == "no-store"
        assert "X-Request-ID" in response.headers

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["services"]["database"] == "in_memory"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}
