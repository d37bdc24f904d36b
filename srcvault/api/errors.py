"""Exception handlers mapping srcvault errors to plain-text responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from srcvault.exceptions import AuthError, SrcVaultError

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"
INTERNAL_ERROR = "Internal Server Error"


def add_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> PlainTextResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return PlainTextResponse(UNAUTHORIZED, status_code=401)

    @app.exception_handler(SrcVaultError)
    async def srcvault_error_handler(request: Request, exc: SrcVaultError) -> PlainTextResponse:
        logger.error("Error in %s: %s", request.url.path, exc, exc_info=exc)
        return PlainTextResponse(INTERNAL_ERROR, status_code=500)

