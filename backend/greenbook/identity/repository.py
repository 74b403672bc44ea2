"""Translation between identity records and store documents."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from greenbook.identity.errors import InvalidProfileDataError
from greenbook.identity.models import IdentityRecord
from greenbook.identity.models import ProfileDraft
from greenbook.identity.models import ProfilePatch
from greenbook.identity.models import UsernameIndexEntry
from greenbook.store.base import DELETE_FIELD
from greenbook.store.base import SERVER_TIMESTAMP

USERS_COLLECTION = "users"
USERNAMES_COLLECTION = "usernames"

_REQUIRED_TEXT_FIELDS = ("email", "display_name", "first_name", "last_name")
_OPTIONAL_TEXT_FIELDS = (
    "username",
    "username_display",
    "bio",
    "home_course_id",
    "home_course_name",
    "profile_image_url",
    "created_at",
    "updated_at",
)


def new_profile_document(
    draft: ProfileDraft,
    *,
    username: str,
    username_display: str,
) -> dict[str, Any]:
    """Profile document for a first write; unset optional fields are omitted."""
    document: dict[str, Any] = {
        "email": draft.email,
        "display_name": draft.display_name,
        "first_name": draft.first_name,
        "last_name": draft.last_name,
        "username": username,
        "username_display": username_display,
        "created_at": SERVER_TIMESTAMP,
        "updated_at": SERVER_TIMESTAMP,
    }
    for name in ("bio", "home_course_id", "home_course_name", "profile_image_url"):
        value = getattr(draft, name)
        if value is not None:
            document[name] = value
    return document


def profile_from_document(principal_id: str, data: Mapping[str, Any]) -> IdentityRecord:
    """Decode a stored profile; missing required text defaults to empty."""
    values: dict[str, Any] = {}
    for name in _REQUIRED_TEXT_FIELDS:
        value = data.get(name, "")
        if not isinstance(value, str):
            raise InvalidProfileDataError(f"Invalid user data received: {name}")
        values[name] = value
    for name in _OPTIONAL_TEXT_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise InvalidProfileDataError(f"Invalid user data received: {name}")
        values[name] = value

    values["username"] = values["username"] or ""
    values["username_display"] = values["username_display"] or values["username"]
    return IdentityRecord(principal_id=principal_id, **values)


def username_fields(username: str, username_display: str) -> dict[str, Any]:
    return {
        "username": username,
        "username_display": username_display,
        "updated_at": SERVER_TIMESTAMP,
    }


def index_entry_document(*, owner_id: str, username_display: str) -> dict[str, Any]:
    return {
        "owner_id": owner_id,
        "username_display": username_display,
        "created_at": SERVER_TIMESTAMP,
    }


def index_entry_from_document(username: str, data: Mapping[str, Any]) -> UsernameIndexEntry:
    owner_id = data.get("owner_id")
    if not isinstance(owner_id, str) or not owner_id:
        raise InvalidProfileDataError(f"Invalid username index entry: {username}")
    return UsernameIndexEntry(
        username=username,
        owner_id=owner_id,
        username_display=str(data.get("username_display") or username),
        created_at=data.get("created_at"),
    )


def patch_to_fields(patch: ProfilePatch) -> dict[str, Any]:
    """Translate a typed patch into store update fields."""
    fields: dict[str, Any] = dict(patch.set_fields)
    for name in patch.clear_fields:
        fields[name] = DELETE_FIELD
    fields["updated_at"] = SERVER_TIMESTAMP
    return fields
