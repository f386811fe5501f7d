"""Application wiring: startup checks and the error envelope."""
import pytest
from fastapi.testclient import TestClient

from userhub.config import settings
from userhub.core.exceptions import ConfigurationError
from userhub.main import RATE_LIMITED_PATHS, create_app
from userhub.services.email_service import MockEmailService

from conftest import registration_payload


@pytest.fixture
def app(database, email_service, upload_service):
    app = create_app(database=database, email_service=email_service, upload_service=upload_service)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return app


def test_startup_fails_without_jwt_secret(app, monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", None)
    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_unexpected_error_includes_stack_outside_production(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL_SERVER_ERROR"
    assert body["message"] == "Internal server error"
    assert "kaboom" in body["stack"]


def test_unexpected_error_hides_stack_in_production(app, monkeypatch):
    with TestClient(app, raise_server_exceptions=False) as client:
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        response = client.get("/boom")

    assert response.status_code == 500
    assert "stack" not in response.json()
    assert "kaboom" not in response.text


def test_missing_secret_on_authenticated_request(client, auth_headers, monkeypatch):
    headers = auth_headers()
    monkeypatch.setattr(settings, "JWT_SECRET", None)
    response = client.get("/api/users/me", headers=headers)
    assert response.status_code == 500
    assert response.json()["code"] == "CONFIGURATION_ERROR"


def test_rate_limited_paths_are_registered_post_routes(app):
    post_routes = {
        route.path for route in app.routes
        if "POST" in getattr(route, "methods", set())
    }
    for path in RATE_LIMITED_PATHS:
        assert path.startswith(settings.API_PREFIX)
        assert path in post_routes


class ExplodingEmailService(MockEmailService):
    async def send_email(self, to, subject, body, html=None):
        raise RuntimeError("mail backend crashed")


def test_register_survives_crashing_email_backend(database, upload_service):
    app = create_app(
        database=database,
        email_service=ExplodingEmailService(),
        upload_service=upload_service
    )
    with TestClient(app) as client:
        response = client.post("/api/auth/register", json=registration_payload())
        assert response.status_code == 201
        assert response.json()["user"]["email"] == "alice@example.com"

        forgot = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
        assert forgot.status_code == 200
