"""Unified ``{code, message, detail}`` error responses."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

_API_ERROR_KEYS = frozenset({"code", "message", "detail"})


def api_error(*, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"code": code, "message": message, "detail": detail or {}}


def _is_api_error(payload: object) -> bool:
    return isinstance(payload, dict) and _API_ERROR_KEYS <= set(payload)


async def handle_http_exception(_: Request, exc: HTTPException) -> JSONResponse:
    """Pass structured details through; wrap plain ones as HTTP_ERROR."""
    content = exc.detail if _is_api_error(exc.detail) else api_error(
        code="HTTP_ERROR", message=str(exc.detail)
    )
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def handle_request_validation_error(
    _: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body and query validation failures as 422 VALIDATION_ERROR."""
    fields = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=api_error(
            code="VALIDATION_ERROR",
            message="request validation failed",
            detail={"fields": fields},
        ),
    )
