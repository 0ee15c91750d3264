"""
Shared fixtures.

Settings are read from the environment when vault.config is first imported,
so the test values are set here before any vault import.
"""

import os

from cryptography.fernet import Fernet

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("DATABASE_URL", "sqlite://")
# Minimum bcrypt cost keeps the suite fast
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from vault.database import make_session_factory  # noqa: E402
from vault.encryption import FieldCipher  # noqa: E402
from vault.gateway import InMemoryGateway, SqlGateway  # noqa: E402
from vault.main import create_app  # noqa: E402
from vault.services.aviationstack import FlightLookup  # noqa: E402


def build_sql_gateway() -> SqlGateway:
    gateway = SqlGateway(make_session_factory("sqlite://"), FieldCipher(Fernet.generate_key().decode()))
    gateway.create_all()
    return gateway


@pytest.fixture
def memory_gateway():
    return InMemoryGateway()


@pytest.fixture
def sql_gateway():
    return build_sql_gateway()


@pytest.fixture(params=["memory", "sql"])
def gateway(request):
    """Runs the test once per backend; both must behave the same."""
    if request.param == "memory":
        return InMemoryGateway()
    return build_sql_gateway()


@pytest.fixture
def flight_lookup():
    # No API key: every lookup reports not found
    return FlightLookup(api_key="")


@pytest.fixture
def client(gateway, flight_lookup):
    app = create_app(gateway=gateway, flight_lookup=flight_lookup)
    with TestClient(app) as test_client:
        yield test_client


def register(client, username: str, email: str | None = None, password: str = "pw123456") -> dict:
    resp = client.post(
        "/auth/register",
        json={"username": username, "email": email or f"{username}@x.com", "password": password},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    body = register(client, "alice", "alice@x.com")
    return {"id": body["user"]["id"], "headers": auth_header(body["token"])}


@pytest.fixture
def bob(client):
    body = register(client, "bob", "bob@x.com")
    return {"id": body["user"]["id"], "headers": auth_header(body["token"])}
