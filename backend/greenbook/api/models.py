"""Request bodies for profile routes."""

from __future__ import annotations

from pydantic import BaseModel

from greenbook.identity.models import ProfilePatch


class RenameUsernameRequest(BaseModel):
    """POST /api/users/me/username request body."""

    username: str


class ProfileUpdateRequest(BaseModel):
    """PATCH /api/users/me request body.

    Omitted fields are left alone; an explicit null clears an optional field.
    """

    username: str | None = None
    display_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    home_course_id: str | None = None
    home_course_name: str | None = None
    profile_image_url: str | None = None

    def to_patch(self) -> ProfilePatch:
        changes = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in ProfilePatch.MUTABLE_FIELDS
        }
        return ProfilePatch.from_changes(changes)
