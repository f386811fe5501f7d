"""Integration tests for the /api/auth endpoints."""
import pytest

from conftest import PASSWORD, registration_payload, token_from_email


class TestRegister:
    def test_register_requires_verification(self, client, email_service):
        response = client.post("/api/auth/register", json=registration_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["requiresVerification"] is True
        assert data["message"]
        user = data["user"]
        assert user["email"] == "alice@example.com"
        assert user["isVerified"] is False
        assert user["role"] == "user"
        assert user["theme"] == "system"
        assert user["language"] == "en"
        assert "passwordHash" not in user
        assert "verificationToken" not in user
        assert email_service.get_last_email()["to"] == "alice@example.com"

    def test_duplicate_email(self, client, register_user):
        register_user()
        response = client.post("/api/auth/register", json=registration_payload())

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "REGISTER_FAILED"
        assert "already exists" in body["details"]["email"][0]

    def test_password_mismatch(self, client):
        payload = registration_payload()
        payload["confirmPassword"] = "something-else"
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "REGISTER_FAILED"
        assert "confirmPassword" in response.json()["details"]

    @pytest.mark.parametrize("field,value", [
        ("email", "not-an-email"),
        ("password", "12345"),
        ("name", ""),
        ("confirmPassword", ""),
    ])
    def test_validation_errors(self, client, field, value):
        payload = registration_payload()
        payload[field] = value
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert field in body["details"]
        assert isinstance(body["details"][field], list)

    def test_missing_body(self, client):
        response = client.post("/api/auth/register")
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestLogin:
    def test_login_returns_token_pair(self, client, register_user):
        register_user()
        response = client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["expiresIn"] == 14400
        assert data["tokenType"] == "Bearer"
        assert data["accessToken"] != data["refreshToken"]
        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["lastLoginAt"] is not None

    def test_failures_are_byte_identical(self, client, register_user):
        register_user()
        unknown = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": PASSWORD},
        )
        wrong = client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": "wrong-password"},
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.content == wrong.content
        assert unknown.json()["code"] == "LOGIN_FAILED"

    def test_two_logins_are_two_sessions(self, client, register_user, login_user):
        register_user()
        first = login_user()
        second = login_user()

        assert first["refreshToken"] != second["refreshToken"]
        for tokens in (first, second):
            response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
            assert response.status_code == 200


class TestMe:
    def test_me_returns_current_user(self, client, auth_headers):
        headers = auth_headers()
        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["email"] == "alice@example.com"
        assert response.json()["lastLoginAt"] is not None

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"message": "No token provided", "code": "UNAUTHORIZED"}

    def test_me_with_non_bearer_scheme(self, client, auth_headers):
        token = auth_headers()["Authorization"].split(" ", 1)[1]
        response = client.get("/api/auth/me", headers={"Authorization": f"Token {token}"})
        assert response.status_code == 401

    def test_me_with_refresh_token(self, client, register_user, login_user):
        register_user()
        tokens = login_user()
        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {tokens['refreshToken']}"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"


class TestRefresh:
    def test_refresh_rotates(self, client, register_user, login_user):
        register_user()
        tokens = login_user()

        response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert response.status_code == 200
        rotated = response.json()
        assert rotated["refreshToken"] != tokens["refreshToken"]
        assert rotated["expiresIn"] == 14400
        assert rotated["tokenType"] == "Bearer"

        replay = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert replay.status_code == 401
        assert replay.json()["code"] == "REFRESH_TOKEN_FAILED"

    def test_refresh_with_garbage(self, client):
        response = client.post("/api/auth/refresh", json={"refreshToken": "garbage"})
        assert response.status_code == 401
        assert response.json()["code"] == "REFRESH_TOKEN_FAILED"


class TestLogout:
    def test_logout_without_header(self, client):
        response = client.post("/api/auth/logout", json={"refreshToken": "whatever"})
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_logout_revokes_refresh_token(self, client, register_user, login_user):
        register_user()
        tokens = login_user()
        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

        response = client.post(
            "/api/auth/logout",
            json={"refreshToken": tokens["refreshToken"]},
            headers=headers,
        )
        assert response.status_code == 200

        refresh = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert refresh.status_code == 401

    def test_logout_twice_still_succeeds(self, client, register_user, login_user):
        register_user()
        tokens = login_user()
        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}
        body = {"refreshToken": tokens["refreshToken"]}

        assert client.post("/api/auth/logout", json=body, headers=headers).status_code == 200
        assert client.post("/api/auth/logout", json=body, headers=headers).status_code == 200

    def test_logout_without_refresh_token(self, client, auth_headers):
        response = client.post("/api/auth/logout", headers=auth_headers())
        assert response.status_code == 200

    def test_logout_all_revokes_every_session(self, client, register_user, login_user):
        register_user()
        register_user(email="bob@example.com", name="Bob")
        first = login_user()
        second = login_user()
        bob = login_user(email="bob@example.com")
        headers = {"Authorization": f"Bearer {first['accessToken']}"}

        response = client.post("/api/auth/logout-all", headers=headers)
        assert response.status_code == 200

        for tokens in (first, second):
            refresh = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
            assert refresh.status_code == 401
        refresh = client.post("/api/auth/refresh", json={"refreshToken": bob["refreshToken"]})
        assert refresh.status_code == 200

    def test_logout_all_requires_auth(self, client):
        response = client.post("/api/auth/logout-all")
        assert response.status_code == 401


class TestPasswordReset:
    def test_forgot_and_reset(self, client, register_user, login_user, email_service):
        register_user()
        session = login_user()
        response = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
        assert response.status_code == 200

        reset_token = token_from_email(email_service.get_last_email())
        payload = {"token": reset_token, "password": "brand-new", "confirmPassword": "brand-new"}
        assert client.post("/api/auth/reset-password", json=payload).status_code == 200

        reused = client.post("/api/auth/reset-password", json=payload)
        assert reused.status_code == 400
        assert reused.json()["code"] == "RESET_PASSWORD_FAILED"

        login = client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": "brand-new"},
        )
        assert login.status_code == 200

        refresh = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
        assert refresh.status_code == 200

    def test_forgot_unknown_email(self, client):
        response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "FORGOT_PASSWORD_FAILED"

    def test_reset_with_unknown_token(self, client):
        response = client.post(
            "/api/auth/reset-password",
            json={"token": "nope", "password": "brand-new", "confirmPassword": "brand-new"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "RESET_PASSWORD_FAILED"


class TestVerification:
    def test_verify_email(self, client, register_user, login_user, email_service):
        register_user()
        token = token_from_email(email_service.get_last_email())

        response = client.post("/api/auth/verify-email", json={"token": token})
        assert response.status_code == 200
        assert login_user()["user"]["isVerified"] is True

        again = client.post("/api/auth/verify-email", json={"token": token})
        assert again.status_code == 400
        assert again.json()["code"] == "VERIFY_EMAIL_FAILED"

    def test_resend_verification(self, client, register_user, email_service):
        register_user()
        old_token = token_from_email(email_service.get_last_email())

        response = client.post("/api/auth/resend-verification", json={"email": "alice@example.com"})
        assert response.status_code == 200
        new_token = token_from_email(email_service.get_last_email())

        assert client.post("/api/auth/verify-email", json={"token": old_token}).status_code == 400
        assert client.post("/api/auth/verify-email", json={"token": new_token}).status_code == 200

        verified = client.post("/api/auth/resend-verification", json={"email": "alice@example.com"})
        assert verified.status_code == 400
        assert verified.json()["code"] == "RESEND_VERIFICATION_FAILED"


class TestMisc:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["timestamp"]
        assert body["uptime"] >= 0

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
