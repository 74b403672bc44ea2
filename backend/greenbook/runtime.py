"""Process-wide service objects shared by the HTTP handlers."""

from __future__ import annotations

from greenbook.auth.federation import FederatedTokenVerifier
from greenbook.auth.provider import AuthProvider
from greenbook.auth.provider import LocalAuthProvider
from greenbook.core.config import Settings
from greenbook.core.config import load_settings
from greenbook.identity.service import UserProfileService
from greenbook.store.base import DocumentStore
from greenbook.store.memory import InMemoryDocumentStore
from greenbook.store.sqlite import SqliteDocumentStore
from greenbook.usernames.profanity import ProfanityGate
from greenbook.usernames.profanity import default_gate

settings: Settings
store: DocumentStore
auth_provider: AuthProvider
federated_verifier: FederatedTokenVerifier | None
profiles: UserProfileService


def build_store(config: Settings) -> DocumentStore:
    if config.greenbook_store_backend == "memory":
        return InMemoryDocumentStore()
    sqlite_store = SqliteDocumentStore(config.greenbook_sqlite_path)
    sqlite_store.init_schema()
    return sqlite_store


def build_gate(config: Settings) -> ProfanityGate:
    if config.greenbook_profanity_words_path:
        return ProfanityGate.from_file(config.greenbook_profanity_words_path)
    return default_gate()


def startup(config: Settings | None = None) -> None:
    """Load settings and (re)build the store, auth provider and profile service."""
    global settings, store, auth_provider, federated_verifier, profiles
    settings = config or load_settings()
    store = build_store(settings)
    # Requests from many users share this provider, so it keeps no current principal.
    local_auth = LocalAuthProvider(settings.greenbook_sqlite_path, announce=False)
    local_auth.init_schema()
    auth_provider = local_auth
    federated_verifier = FederatedTokenVerifier.from_settings(settings)
    profiles = UserProfileService(
        store,
        gate=build_gate(settings),
        fail_open_on_permission_denied=(
            settings.greenbook_availability_fail_open_on_permission_denied
        ),
    )


async def shutdown() -> None:
    await store.close()


__all__ = [
    "Settings",
    "auth_provider",
    "federated_verifier",
    "profiles",
    "settings",
    "shutdown",
    "startup",
    "store",
]
