"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
import uvicorn

import greenbook.runtime as runtime
from greenbook.api.http import handle_http_exception
from greenbook.api.http import handle_request_validation_error
from greenbook.api.routers.auth import router as auth_router
from greenbook.api.routers.usernames import router as usernames_router
from greenbook.api.routers.users import router as users_router
from greenbook.core.config import load_settings
from greenbook.core.logging_config import configure_logging


@asynccontextmanager
async def lifespan(_: FastAPI):
    runtime.startup()
    configure_logging(runtime.settings.greenbook_log_level)
    yield
    await runtime.shutdown()


app = FastAPI(title="Greenbook identity", lifespan=lifespan)
app.add_exception_handler(HTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_request_validation_error)
app.include_router(auth_router)
app.include_router(usernames_router)
app.include_router(users_router)


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    settings = load_settings()
    uvicorn.run(app, host=settings.greenbook_app_host, port=settings.greenbook_app_port)
