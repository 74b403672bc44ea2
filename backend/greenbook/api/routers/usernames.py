"""Username validation, availability and search routes."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi import Query

import greenbook.runtime as runtime
from greenbook.api.errors import domain_errors
from greenbook.usernames.rules import normalize_username
from greenbook.usernames.rules import validate_username

router = APIRouter()


@router.get("/api/usernames/validate")
def validate(username: str = Query(default="")) -> dict[str, object]:
    """Local verdict only; never touches the store."""
    verdict = validate_username(username, gate=runtime.profiles.gate)
    return {
        "username": normalize_username(username),
        "valid": verdict.is_valid,
        "reason": verdict.reason.value if verdict.reason is not None else None,
        "message": verdict.message,
    }


@router.get("/api/usernames/availability")
async def availability(username: str = Query(default="")) -> dict[str, object]:
    with domain_errors():
        available = await runtime.profiles.check_username_availability(username)
    return {"username": normalize_username(username), "available": available}


@router.get("/api/usernames/search")
async def search(
    prefix: str = Query(default=""),
    limit: int = Query(default=20, ge=1, le=100),
) -> dict[str, object]:
    with domain_errors():
        records = await runtime.profiles.search_usernames(prefix, limit=limit)
    return {"users": [record.to_public_dict() for record in records]}
