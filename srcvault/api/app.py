"""Application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from srcvault import __version__
from srcvault.api.errors import add_error_handlers
from srcvault.api.middleware import install_request_logging
from srcvault.api.routes import create_router
from srcvault.models.config import ServerConfig
from srcvault.service import SrcVault

logger = logging.getLogger(__name__)


def create_app(config: ServerConfig, vault: SrcVault | None = None) -> FastAPI:
    """Build the FastAPI app for ``config``.

    A prepared ``vault`` may be passed in, e.g. one using a fake command runner.
    """
    vault = vault or SrcVault(config)

    app = FastAPI(title="srcvault", version=__version__)
    app.state.vault = vault

    install_request_logging(app)
    add_error_handlers(app)
    app.include_router(create_router(vault, token=config.token))

    logger.debug(
        "Serving %s (branch %s, policy %s)",
        config.source_dir,
        config.branch,
        config.archive_policy,
    )
    return app
