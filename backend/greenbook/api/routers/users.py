"""Profile routes for the signed-in principal and public lookups."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query

import greenbook.runtime as runtime
from greenbook.api.deps import require_current_principal
from greenbook.api.errors import domain_errors
from greenbook.api.http import api_error
from greenbook.api.models import ProfileUpdateRequest
from greenbook.api.models import RenameUsernameRequest
from greenbook.identity import workflows
from greenbook.identity.models import ProfilePatch

router = APIRouter()


def _patch_from(payload: ProfileUpdateRequest) -> ProfilePatch:
    try:
        return payload.to_patch()
    except ValueError as exc:
        raise HTTPException(
            status_code=400,
            detail=api_error(code="VALIDATION_ERROR", message=str(exc), detail={}),
        ) from exc


@router.get("/api/users/search")
async def search_users(
    first_name: str = Query(min_length=1),
    last_name: str | None = Query(default=None),
) -> dict[str, object]:
    with domain_errors():
        records = await runtime.profiles.search_users(first_name, last_name)
    return {"users": [record.to_public_dict() for record in records]}


@router.get("/api/users/by-username/{username}")
async def get_by_username(username: str) -> dict[str, object]:
    with domain_errors():
        record = await runtime.profiles.get_by_username(username)
    return record.to_public_dict()


@router.get("/api/users/me")
async def get_me(principal_id: str = Depends(require_current_principal)) -> dict[str, object]:
    with domain_errors():
        record = await runtime.profiles.get_profile(principal_id)
    return record.to_public_dict(include_private=True)


@router.patch("/api/users/me")
async def update_me(
    payload: ProfileUpdateRequest,
    principal_id: str = Depends(require_current_principal),
) -> dict[str, object]:
    """Rename when the username really changed, then apply the other fields."""
    patch = _patch_from(payload)
    with domain_errors():
        record = await workflows.save_profile_edit(
            profiles=runtime.profiles,
            principal_id=principal_id,
            username=payload.username,
            patch=patch,
        )
    return record.to_public_dict(include_private=True)


@router.post("/api/users/me/username")
async def rename_me(
    payload: RenameUsernameRequest,
    principal_id: str = Depends(require_current_principal),
) -> dict[str, object]:
    with domain_errors():
        record = await runtime.profiles.rename_username(payload.username, principal_id)
    return record.to_public_dict(include_private=True)


@router.delete("/api/users/me")
async def delete_me(principal_id: str = Depends(require_current_principal)) -> dict[str, bool]:
    with domain_errors():
        await runtime.profiles.delete_identity(principal_id)
    return {"ok": True}
