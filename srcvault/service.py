"""Main SrcVault class - sync the working copy and hand out its archive."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from srcvault.archive import (
    ArchiveBuilder,
    ArchiveCache,
    PersistentArchiveCache,
    TransientArchiveCache,
)
from srcvault.git import UP_TO_DATE_CHECKS, RepositorySyncClient
from srcvault.models.archive import Archive
from srcvault.models.config import ServerConfig
from srcvault.runner import CommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)


class SrcVault:
    """Runs the sync -> resolve -> cache -> build pipeline for one working copy."""

    def __init__(
        self,
        config: ServerConfig,
        runner: CommandRunner | None = None,
        *,
        temp_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.sync_client = RepositorySyncClient(
            config.repo_path,
            config.branch,
            self.runner,
            remote=config.remote,
            check=UP_TO_DATE_CHECKS[config.sync_check](),
            timeout=config.command_timeout,
        )
        self.builder = ArchiveBuilder(self.runner, timeout=config.command_timeout)
        self.cache: ArchiveCache
        if config.archive_policy == "transient":
            self.cache = TransientArchiveCache(self.builder, temp_dir)
        else:
            self.cache = PersistentArchiveCache(config.cache_dir, self.builder)
        # Held from fetch until the archive exists: pulls must not overlap each
        # other or a build
        self._repo_lock = asyncio.Lock()

    @property
    def source_dir(self) -> Path:
        return self.config.source_dir

    async def prepare_archive(self) -> Archive:
        """Return an archive of the source folder at the latest remote revision.

        Raises:
            SyncError: Fetch, status or pull failed.
            ResolveError: HEAD could not be resolved.
            BuildError: The archive could not be created.
        """
        # The working copy must not move while tar reads it, or the archive
        # would be stored under a revision its contents do not match
        async with self._repo_lock:
            await self.sync_client.sync()
            revision = await self.sync_client.resolve_revision()
            archive = await self.cache.get_or_create(revision, self.source_dir)
        logger.debug("Archive for %s: %s (%d bytes)", revision.short, archive.path, archive.size)
        return archive

    async def release(self, archive: Archive) -> None:
        await self.cache.release(archive)
