"""FastAPI router for the srcvault endpoints.

Usage:
    from fastapi import FastAPI
    from srcvault.api import create_router
    from srcvault import ServerConfig, SrcVault

    config = ServerConfig.load()
    app = FastAPI()
    app.include_router(create_router(SrcVault(config), token=config.token))
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header
from fastapi.responses import FileResponse, PlainTextResponse
from starlette.types import Receive, Scope, Send

from srcvault.exceptions import AuthError
from srcvault.models.archive import Archive
from srcvault.service import SrcVault

logger = logging.getLogger(__name__)

AUTH_HEADER = "auth"


class ArchiveResponse(FileResponse):
    """Streams an archive and releases it once the response is over.

    Release runs on every exit path, including client disconnects, so transient
    archives never outlive their request.
    """

    def __init__(self, archive: Archive, vault: SrcVault) -> None:
        super().__init__(
            archive.path,
            media_type=archive.media_type,
            filename=archive.filename,
        )
        self.archive = archive
        self.vault = vault

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.vault.release(self.archive)


def create_router(
    vault: SrcVault,
    *,
    token: str,
    prefix: str = "",
    tags: list[str] | None = None,
) -> APIRouter:
    """Create the router serving ``/health`` and ``/src``.

    Args:
        vault: SrcVault instance that produces archives
        token: Shared secret expected in the ``auth`` header
        prefix: URL prefix for all routes
        tags: OpenAPI tags for the router
    """
    if tags is None:
        tags = ["srcvault"]

    router = APIRouter(prefix=prefix, tags=tags)

    def require_token(
        auth: Annotated[str | None, Header(alias=AUTH_HEADER)] = None,
    ) -> None:
        if not auth or not secrets.compare_digest(auth.encode(), token.encode()):
            raise AuthError("Missing or invalid auth header")

    @router.get("/health", response_class=PlainTextResponse)
    async def health() -> PlainTextResponse:
        """Liveness probe."""
        return PlainTextResponse("OK")

    @router.get(
        "/src",
        response_class=FileResponse,
        dependencies=[Depends(require_token)],
    )
    async def download_source() -> ArchiveResponse:
        """Download the source folder as a tar.gz of the latest remote revision."""
        archive = await vault.prepare_archive()
        return ArchiveResponse(archive, vault)

    return router
