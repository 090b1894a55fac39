"""
Shared fixtures: an app wired to in-memory storage and account helpers.
"""
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from vendorhive.api.app import create_app
from vendorhive.lib.metrics import reset_metrics
from vendorhive.lib.settings import Settings
from vendorhive.storage.memory import MemoryStorage


@pytest.fixture(autouse=True)
def clean_metrics():
    """Each test starts with empty counters."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        storage_backend="memory",
        jwt_secret="test-secret",
        password_hash_rounds=4,
        log_json=False,
        media_bucket="test-bucket",
        media_public_base_url="https://cdn.example.com",
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def app(settings, storage):
    return create_app(settings=settings, storage=storage)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client) -> Callable[..., dict]:
    """
    Register an account and return the response body plus ``headers``.

    Example:
        joe = register("joe", role="vendor", vendor={"businessName": "Joe's Plumbing"})
        client.get("/api/users/me", headers=joe["headers"])
    """
    def _register(username: str, role: str = "user", vendor: Optional[dict] = None, **fields) -> dict:
        payload = {
            "name": fields.pop("name", username.capitalize()),
            "username": username,
            "email": fields.pop("email", f"{username}@example.com"),
            "password": fields.pop("password", "secret123"),
            "role": role,
            **fields,
        }
        if vendor is not None:
            payload["vendor"] = vendor
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        body["headers"] = auth_header(body["token"])
        return body

    return _register


@pytest.fixture
def vendor_account(register, client) -> dict:
    """A vendor account with its vendor profile under ``vendor``."""
    account = register("joe", role="vendor", vendor={"businessName": "Joe's Plumbing", "category": "Plumbing"})
    profile = client.get("/api/users/me", headers=account["headers"]).json()
    account["vendor"] = profile["vendorProfile"]
    return account


@pytest.fixture
def customer_account(register) -> dict:
    return register("alice")
