"""Registration, provisioning and profile-edit workflows."""

from __future__ import annotations

import logging
import random

from greenbook.auth.models import AuthPrincipal
from greenbook.auth.models import FederatedProfile
from greenbook.auth.models import SignUpRequest
from greenbook.auth.provider import AuthProvider
from greenbook.identity.errors import AvailabilityCheckError
from greenbook.identity.errors import IdentityError
from greenbook.identity.errors import InvalidUsernameError
from greenbook.identity.errors import ProfileAlreadyExistsError
from greenbook.identity.errors import ProfileNotFoundError
from greenbook.identity.errors import ProfileProvisioningError
from greenbook.identity.errors import UsernameTakenError
from greenbook.identity.models import IdentityRecord
from greenbook.identity.models import ProfileDraft
from greenbook.identity.models import ProfilePatch
from greenbook.identity.service import UserProfileService
from greenbook.usernames.rules import MAX_USERNAME_LENGTH
from greenbook.usernames.rules import display_username
from greenbook.usernames.rules import normalize_username
from greenbook.usernames.rules import validate_username

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_ATTEMPTS = 10
FALLBACK_USERNAME_PREFIX = "user"
# Room left after the base for numeric suffixes.
_SUFFIX_RESERVE = 4
_DISALLOWED_USERNAME_CHARS = str.maketrans("", "", " .'’")


async def sign_up(
    *,
    auth: AuthProvider,
    profiles: UserProfileService,
    payload: SignUpRequest,
) -> IdentityRecord:
    """Create the auth principal, then the profile and its username reservation.

    Once the principal exists, any profile failure is raised as
    :class:`ProfileProvisioningError`; the next sign-in resumes provisioning
    through :func:`ensure_profile`. The principal is announced on the
    provider's feed only after its profile is stored.
    """
    verdict = validate_username(payload.username, gate=profiles.gate)
    if verdict.reason is not None:
        raise InvalidUsernameError(verdict.reason)
    if not await profiles.check_username_availability(payload.username):
        raise UsernameTakenError(normalize_username(payload.username))

    first_name = payload.first_name.strip()
    last_name = payload.last_name.strip()
    display_name = f"{first_name} {last_name}".strip()
    principal = await auth.create_principal(
        payload.email,
        payload.password,
        display_name=display_name,
    )

    draft = ProfileDraft(
        email=principal.email,
        first_name=first_name,
        last_name=last_name,
        username=payload.username,
        display_name=display_name,
    )
    try:
        record = await profiles.create_with_username(draft, principal.principal_id)
    except IdentityError as exc:
        logger.error(
            "principal %s created but profile write failed: %s", principal.principal_id, exc
        )
        raise ProfileProvisioningError(principal.principal_id, exc) from exc

    await auth.activate(principal)
    return record


async def sign_in(
    *,
    auth: AuthProvider,
    profiles: UserProfileService,
    email: str,
    password: str,
    max_attempts: int = DEFAULT_GENERATION_ATTEMPTS,
) -> IdentityRecord:
    principal = await auth.sign_in(email, password)
    return await ensure_profile(profiles=profiles, principal=principal, max_attempts=max_attempts)


async def federated_sign_in(
    *,
    auth: AuthProvider,
    profiles: UserProfileService,
    profile: FederatedProfile,
    max_attempts: int = DEFAULT_GENERATION_ATTEMPTS,
) -> IdentityRecord:
    principal = await auth.federated_sign_in(profile)
    return await ensure_profile(profiles=profiles, principal=principal, max_attempts=max_attempts)


def split_display_name(display_name: str | None) -> tuple[str, str]:
    """First token is the first name, the rest the last name."""
    parts = (display_name or "").split()
    if not parts:
        return "User", ""
    return parts[0], " ".join(parts[1:])


def derive_base_username(name: str | None) -> str:
    """Lowercase, strip spaces and punctuation, and leave room for a suffix."""
    base = (name or "").strip().lower().translate(_DISALLOWED_USERNAME_CHARS)
    base = base[: MAX_USERNAME_LENGTH - _SUFFIX_RESERVE]
    return base or FALLBACK_USERNAME_PREFIX


def fallback_username(principal_id: str) -> str:
    return FALLBACK_USERNAME_PREFIX + principal_id[:8].lower()


async def generate_unique_username(
    profiles: UserProfileService,
    *,
    base: str,
    principal_id: str,
    max_attempts: int = DEFAULT_GENERATION_ATTEMPTS,
    rng: random.Random | None = None,
) -> str:
    """Probe base, base + id suffix, then base + random digits.

    Falls back to ``user`` + id prefix without checking once the attempts
    run out.
    """
    rng = rng or random.Random()
    candidate = base
    for attempt in range(max_attempts):
        if validate_username(candidate, gate=profiles.gate).is_valid:
            try:
                if await profiles.check_username_availability(candidate):
                    return normalize_username(candidate)
            except AvailabilityCheckError as exc:
                logger.warning("availability check for %r failed: %s", candidate, exc)
        if attempt == 0:
            candidate = base + principal_id[-4:].lower()
        else:
            candidate = f"{base}{rng.randint(100, 9999)}"

    fallback = fallback_username(principal_id)
    logger.warning("using fallback username %r for principal %s", fallback, principal_id)
    return fallback


async def ensure_profile(
    *,
    profiles: UserProfileService,
    principal: AuthPrincipal,
    max_attempts: int = DEFAULT_GENERATION_ATTEMPTS,
) -> IdentityRecord:
    """Return the principal's profile, provisioning one if it is missing."""
    try:
        return await profiles.get_profile(principal.principal_id)
    except ProfileNotFoundError:
        pass

    logger.info("provisioning missing profile for principal %s", principal.principal_id)
    first_name, last_name = split_display_name(principal.display_name)
    username = await generate_unique_username(
        profiles,
        base=derive_base_username(first_name),
        principal_id=principal.principal_id,
        max_attempts=max_attempts,
    )
    draft = ProfileDraft(
        email=principal.email,
        first_name=first_name,
        last_name=last_name,
        username=username,
        display_name=principal.display_name or "User",
        profile_image_url=principal.photo_url,
    )
    try:
        return await profiles.create_with_username(draft, principal.principal_id)
    except ProfileAlreadyExistsError:
        # Another session provisioned the same principal first.
        return await profiles.get_profile(principal.principal_id)


def is_unchanged_username(stored_username: str, edited_username: str) -> bool:
    return normalize_username(edited_username) == normalize_username(stored_username)


async def save_profile_edit(
    *,
    profiles: UserProfileService,
    principal_id: str,
    username: str | None = None,
    patch: ProfilePatch | None = None,
) -> IdentityRecord:
    """Rename (when the username really changed), then apply the patch.

    The two writes are separate commits: the rename batch keeps profile and
    index consistent on its own, and a patch failure afterwards leaves the
    rename in place.
    """
    record = await profiles.get_profile(principal_id)
    if username is not None:
        if not is_unchanged_username(record.username, username):
            record = await profiles.rename_username(username, principal_id)
        elif display_username(username) != record.username_display:
            record = await profiles.rename_username(username, principal_id)
    if patch is not None and not patch.is_empty:
        record = await profiles.update_profile(principal_id, patch)
    return record


class IdentitySession:
    """Tracks the signed-in principal and its profile from the change feed."""

    def __init__(
        self,
        *,
        auth: AuthProvider,
        profiles: UserProfileService,
        max_attempts: int = DEFAULT_GENERATION_ATTEMPTS,
    ) -> None:
        self._profiles = profiles
        self._max_attempts = max_attempts
        self.principal: AuthPrincipal | None = None
        self.profile: IdentityRecord | None = None
        self.last_error: IdentityError | None = None
        self._unsubscribe = auth.feed.subscribe(self._on_principal_changed)

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    def close(self) -> None:
        self._unsubscribe()

    async def _on_principal_changed(self, principal: AuthPrincipal | None) -> None:
        self.principal = principal
        self.last_error = None
        if principal is None:
            self.profile = None
            return
        try:
            self.profile = await ensure_profile(
                profiles=self._profiles,
                principal=principal,
                max_attempts=self._max_attempts,
            )
        except IdentityError as exc:
            logger.error("loading profile for principal %s failed: %s", principal.principal_id, exc)
            self.profile = None
            self.last_error = exc
