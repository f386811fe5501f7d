import asyncio
import inspect
import os
import re
import tempfile

# Configure settings before any userhub import reads them
_test_tmp_dir = tempfile.mkdtemp(prefix="userhub_test_")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_tmp_dir}/app.db")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("UPLOAD_PATH", os.path.join(_test_tmp_dir, "uploads"))
os.environ.setdefault("SMTP_HOST", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import select  # noqa: E402

from userhub.database import Database  # noqa: E402
from userhub.main import create_app  # noqa: E402
from userhub.models.user import User  # noqa: E402
from userhub.services.email_service import MockEmailService  # noqa: E402
from userhub.services.upload_service import LocalUploadService  # noqa: E402

PASSWORD = "secret123"


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite file database per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    asyncio.run(db.init_models())
    yield db
    asyncio.run(db.dispose())


@pytest.fixture
def email_service():
    return MockEmailService()


@pytest.fixture
def upload_service(tmp_path):
    return LocalUploadService(upload_path=str(tmp_path / "uploads"), url_prefix="/uploads")


@pytest.fixture
def client(database, email_service, upload_service):
    app = create_app(
        database=database,
        email_service=email_service,
        upload_service=upload_service
    )
    with TestClient(app) as test_client:
        yield test_client


def token_from_email(email: dict) -> str:
    """Pull the ?token= value out of a mock email body."""
    match = re.search(r"token=([0-9a-f]+)", email["body"])
    assert match, "email does not contain a token link"
    return match.group(1)


def registration_payload(email="alice@example.com", name="Alice", password=PASSWORD):
    return {
        "name": name,
        "email": email,
        "password": password,
        "confirmPassword": password,
    }


@pytest.fixture
def register_user(client):
    def _register(email="alice@example.com", name="Alice", password=PASSWORD):
        response = client.post("/api/auth/register", json=registration_payload(email, name, password))
        assert response.status_code == 201, response.text
        return response.json()["user"]
    return _register


@pytest.fixture
def login_user(client):
    def _login(email="alice@example.com", password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()
    return _login


@pytest.fixture
def auth_headers(register_user, login_user):
    """Register and log in a user, returning bearer headers for it."""
    def _headers(email="alice@example.com", name="Alice", password=PASSWORD):
        register_user(email=email, name=name, password=password)
        tokens = login_user(email=email, password=password)
        return {"Authorization": f"Bearer {tokens['accessToken']}"}
    return _headers


@pytest.fixture
def set_role(database):
    """Change a user's role directly in the store."""
    def _set_role(email: str, role: str):
        async def _update():
            async with database.session() as session:
                result = await session.exec(select(User).where(User.email == email))
                user = result.one()
                user.role = role
                session.add(user)
                await session.commit()
        asyncio.run(_update())
    return _set_role
