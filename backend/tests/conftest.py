"""Shared fixtures for identity tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from greenbook.auth.provider import LocalAuthProvider
from greenbook.core.config import Settings
from greenbook.identity.service import UserProfileService
from greenbook.store.memory import InMemoryDocumentStore
from tests.identity_testkit import FEDERATED_AUDIENCE
from tests.identity_testkit import FEDERATED_ISSUER
from tests.identity_testkit import FEDERATED_KEY

TEST_JWT_SECRET = "greenbook-test-secret-key-32-bytes-min"


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def profiles(store: InMemoryDocumentStore) -> UserProfileService:
    return UserProfileService(store)


@pytest.fixture
def auth_provider(tmp_path: Path) -> LocalAuthProvider:
    provider = LocalAuthProvider(str(tmp_path / "auth.sqlite3"))
    provider.init_schema()
    return provider


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        greenbook_jwt_secret=TEST_JWT_SECRET,
        greenbook_sqlite_path=str(tmp_path / "greenbook.sqlite3"),
        greenbook_store_backend="memory",
        greenbook_username_debounce_seconds=0.01,
        greenbook_federated_provider="google",
        greenbook_federated_issuer=FEDERATED_ISSUER,
        greenbook_federated_audience=FEDERATED_AUDIENCE,
        greenbook_federated_signing_key=FEDERATED_KEY,
    )


@pytest.fixture
def signup_payload() -> dict[str, str]:
    """Default sign-up body used by workflow and API tests."""
    return {
        "first_name": "Alice",
        "last_name": "Smith",
        "username": "Alice_Golf",
        "email": "alice@example.com",
        "password": "secret123",
    }
