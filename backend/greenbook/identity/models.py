"""Identity domain records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import ClassVar


@dataclass(slots=True)
class ProfileDraft:
    """Fields supplied when a profile is first created."""

    email: str
    first_name: str
    last_name: str
    username: str
    display_name: str = ""
    bio: str | None = None
    home_course_id: str | None = None
    home_course_name: str | None = None
    profile_image_url: str | None = None

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class IdentityRecord:
    """Profile document keyed by the authenticated principal id."""

    principal_id: str
    email: str
    display_name: str
    first_name: str
    last_name: str
    username: str = ""
    username_display: str = ""
    bio: str | None = None
    home_course_id: str | None = None
    home_course_name: str | None = None
    profile_image_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def initials(self) -> str:
        return (self.first_name[:1] + self.last_name[:1]).upper()

    def to_public_dict(self, *, include_private: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.principal_id,
            "display_name": self.display_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username_display or self.username,
            "bio": self.bio,
            "home_course_id": self.home_course_id,
            "home_course_name": self.home_course_name,
            "profile_image_url": self.profile_image_url,
            "initials": self.initials,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_private:
            payload["email"] = self.email
        return payload


@dataclass(frozen=True, slots=True)
class UsernameIndexEntry:
    """Secondary-index document: canonical username -> owning principal."""

    username: str
    owner_id: str
    username_display: str = ""
    created_at: str | None = None


@dataclass(frozen=True, slots=True)
class ProfilePatch:
    """Explicit profile update: fields to set plus fields to clear.

    Username changes never travel in a patch; they go through rename.
    """

    MUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "display_name",
            "first_name",
            "last_name",
            "bio",
            "home_course_id",
            "home_course_name",
            "profile_image_url",
        }
    )
    REQUIRED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"display_name", "first_name", "last_name"}
    )

    set_fields: Mapping[str, str] = field(default_factory=dict)
    clear_fields: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        unknown = (set(self.set_fields) | set(self.clear_fields)) - self.MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"fields are not patchable: {sorted(unknown)}")
        overlap = set(self.set_fields) & set(self.clear_fields)
        if overlap:
            raise ValueError(f"fields cannot be both set and cleared: {sorted(overlap)}")
        required = self.REQUIRED_FIELDS & set(self.clear_fields)
        if required:
            raise ValueError(f"required fields cannot be cleared: {sorted(required)}")

    @classmethod
    def from_changes(cls, changes: Mapping[str, str | None]) -> "ProfilePatch":
        """Build a patch where a None value means "clear this field"."""
        return cls(
            set_fields={name: value for name, value in changes.items() if value is not None},
            clear_fields=frozenset(name for name, value in changes.items() if value is None),
        )

    @property
    def is_empty(self) -> bool:
        return not self.set_fields and not self.clear_fields
