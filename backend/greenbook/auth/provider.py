"""Authentication provider contract and the bundled local provider."""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
import inspect
import logging
import secrets
import sqlite3

from passlib.context import CryptContext
from passlib.exc import UnknownHashError
import regex

from greenbook.auth.errors import AuthUnavailableError
from greenbook.auth.errors import EmailAlreadyInUseError
from greenbook.auth.errors import InvalidCredentialsError
from greenbook.auth.errors import InvalidEmailError
from greenbook.auth.errors import PrincipalNotFoundError
from greenbook.auth.errors import WeakPasswordError
from greenbook.auth.models import AuthPrincipal
from greenbook.auth.models import FederatedProfile
from greenbook.auth.repository import PrincipalRow
from greenbook.auth.repository import get_principal_by_email
from greenbook.auth.repository import get_principal_by_federated_subject
from greenbook.auth.repository import get_principal_by_id
from greenbook.auth.repository import insert_principal
from greenbook.auth.repository import link_federated_identity
from greenbook.auth.schema import init_auth_schema
from greenbook.core.clock import to_utc_iso
from greenbook.core.clock import utc_now

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_EMAIL_PATTERN = regex.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
_PASSWORD_CONTEXT = CryptContext(schemes=["bcrypt"], deprecated="auto")

PrincipalListener = Callable[[AuthPrincipal | None], Awaitable[None] | None]


class PrincipalChangeFeed:
    """Subscribable "current principal changed" stream.

    Models the signed-in principal of one client session. A server that
    handles many users at once must not share a publishing feed between
    them; it builds its provider with ``announce=False`` instead.
    """

    def __init__(self) -> None:
        self._listeners: list[PrincipalListener] = []
        self._current: AuthPrincipal | None = None

    @property
    def current(self) -> AuthPrincipal | None:
        return self._current

    def subscribe(self, listener: PrincipalListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, principal: AuthPrincipal | None) -> None:
        self._current = principal
        for listener in list(self._listeners):
            result = listener(principal)
            if inspect.isawaitable(result):
                await result


class AuthProvider(ABC):
    """Managed authentication the identity workflows depend on."""

    def __init__(self, *, announce: bool = True) -> None:
        self.feed = PrincipalChangeFeed()
        self._announce = announce

    @abstractmethod
    async def create_principal(
        self,
        email: str,
        password: str,
        *,
        display_name: str | None = None,
    ) -> AuthPrincipal:
        """Register an email/password principal.

        The new principal is not announced on the feed; callers do that with
        :meth:`activate` once the account is usable.
        """

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthPrincipal:
        """Authenticate with email/password and make the principal current."""

    @abstractmethod
    async def federated_sign_in(self, profile: FederatedProfile) -> AuthPrincipal:
        """Authenticate with provider-verified claims, creating the principal if new."""

    @abstractmethod
    async def get_principal(self, principal_id: str) -> AuthPrincipal:
        """Look up a principal by id."""

    async def _publish(self, principal: AuthPrincipal | None) -> None:
        if self._announce:
            await self.feed.publish(principal)

    async def activate(self, principal: AuthPrincipal) -> None:
        await self._publish(principal)

    async def sign_out(self) -> None:
        await self._publish(None)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_principal(row: PrincipalRow) -> AuthPrincipal:
    principal_id, email, _, display_name, photo_url = row
    return AuthPrincipal(
        principal_id=principal_id,
        email=email,
        display_name=display_name,
        photo_url=photo_url,
    )


def _new_principal_id() -> str:
    return secrets.token_hex(14)


def _verify_password(plain_password: str, password_hash: str | None) -> bool:
    if password_hash is None:
        return False
    try:
        return _PASSWORD_CONTEXT.verify(plain_password, password_hash)
    except (UnknownHashError, ValueError):
        return False


class LocalAuthProvider(AuthProvider):
    """SQLite-backed provider with bcrypt password hashes.

    Stands in for a managed auth service in development and tests.
    Federated claims come from an already verified provider token; an
    existing account is linked by email only when the provider vouches
    for that email.
    """

    def __init__(self, sqlite_path: str, *, announce: bool = True) -> None:
        super().__init__(announce=announce)
        self._sqlite_path = sqlite_path

    def init_schema(self) -> None:
        init_auth_schema(self._sqlite_path)

    async def create_principal(
        self,
        email: str,
        password: str,
        *,
        display_name: str | None = None,
    ) -> AuthPrincipal:
        normalized_email = _normalize_email(email)
        if _EMAIL_PATTERN.fullmatch(normalized_email) is None:
            raise InvalidEmailError()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise WeakPasswordError()

        principal_id = _new_principal_id()
        password_hash = await asyncio.to_thread(_PASSWORD_CONTEXT.hash, password)
        try:
            await asyncio.to_thread(
                insert_principal,
                sqlite_path=self._sqlite_path,
                principal_id=principal_id,
                email=normalized_email,
                password_hash=password_hash,
                display_name=display_name,
                photo_url=None,
                created_at=to_utc_iso(utc_now()),
            )
        except sqlite3.IntegrityError as exc:
            raise EmailAlreadyInUseError() from exc
        except sqlite3.OperationalError as exc:
            raise AuthUnavailableError() from exc

        principal = AuthPrincipal(
            principal_id=principal_id,
            email=normalized_email,
            display_name=display_name,
        )
        logger.info("created principal %s", principal_id)
        return principal

    async def sign_in(self, email: str, password: str) -> AuthPrincipal:
        try:
            row = await asyncio.to_thread(
                get_principal_by_email,
                sqlite_path=self._sqlite_path,
                email=_normalize_email(email),
            )
        except sqlite3.OperationalError as exc:
            raise AuthUnavailableError() from exc
        if row is None:
            raise InvalidCredentialsError()
        if not await asyncio.to_thread(_verify_password, password, row[2]):
            raise InvalidCredentialsError()

        principal = _to_principal(row)
        await self._publish(principal)
        return principal

    async def federated_sign_in(self, profile: FederatedProfile) -> AuthPrincipal:
        try:
            principal = await asyncio.to_thread(self._resolve_federated, profile)
        except sqlite3.OperationalError as exc:
            raise AuthUnavailableError() from exc
        await self._publish(principal)
        return principal

    def _resolve_federated(self, profile: FederatedProfile) -> AuthPrincipal:
        row = get_principal_by_federated_subject(
            sqlite_path=self._sqlite_path,
            provider=profile.provider,
            subject=profile.subject,
        )
        if row is not None:
            return _to_principal(row)

        email = _normalize_email(profile.email)
        row = get_principal_by_email(sqlite_path=self._sqlite_path, email=email)
        if row is None:
            principal_id = _new_principal_id()
            try:
                insert_principal(
                    sqlite_path=self._sqlite_path,
                    principal_id=principal_id,
                    email=email,
                    password_hash=None,
                    display_name=profile.display_name,
                    photo_url=profile.avatar_url,
                    created_at=to_utc_iso(utc_now()),
                )
            except sqlite3.IntegrityError:
                # Same email registered concurrently; link to that principal.
                row = get_principal_by_email(sqlite_path=self._sqlite_path, email=email)
                if row is None:
                    raise
                principal_id = self._linkable_principal_id(row, profile)
            else:
                logger.info("created federated principal %s via %s", principal_id, profile.provider)
        else:
            principal_id = self._linkable_principal_id(row, profile)

        link_federated_identity(
            sqlite_path=self._sqlite_path,
            provider=profile.provider,
            subject=profile.subject,
            principal_id=principal_id,
            created_at=to_utc_iso(utc_now()),
        )
        linked = get_principal_by_id(sqlite_path=self._sqlite_path, principal_id=principal_id)
        if linked is None:
            raise PrincipalNotFoundError()
        return _to_principal(linked)

    @staticmethod
    def _linkable_principal_id(row: PrincipalRow, profile: FederatedProfile) -> str:
        if not profile.email_verified:
            logger.warning(
                "refusing to link %s subject to principal %s: email not verified",
                profile.provider,
                row[0],
            )
            raise EmailAlreadyInUseError()
        return row[0]

    async def get_principal(self, principal_id: str) -> AuthPrincipal:
        try:
            row = await asyncio.to_thread(
                get_principal_by_id,
                sqlite_path=self._sqlite_path,
                principal_id=principal_id,
            )
        except sqlite3.OperationalError as exc:
            raise AuthUnavailableError() from exc
        if row is None:
            raise PrincipalNotFoundError()
        return _to_principal(row)
