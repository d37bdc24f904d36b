"""Revision-keyed archive storage.

Two policies are available:

- ``PersistentArchiveCache`` keeps one ``src-<revision>.tar.gz`` per revision
  and reuses it for every later request. Builds are serialized per revision.
- ``TransientArchiveCache`` builds a uniquely named archive in the temporary
  directory on every request. The handler deletes it once it has been sent.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from srcvault.archive.builder import ArchiveBuilder
from srcvault.archive.locks import KeyedLock
from srcvault.exceptions import BuildError
from srcvault.models.archive import Archive, Revision

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "src-"
ARCHIVE_SUFFIX = ".tar.gz"


def archive_name(revision: Revision, unique: str | None = None) -> str:
    """File name for the archive of ``revision``."""
    if unique:
        return f"{ARCHIVE_PREFIX}{revision.short}-{unique}{ARCHIVE_SUFFIX}"
    return f"{ARCHIVE_PREFIX}{revision.short}{ARCHIVE_SUFFIX}"


def _size_or_none(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None


class ArchiveCache(ABC):
    """Maps a revision to a built archive."""

    def __init__(self, builder: ArchiveBuilder) -> None:
        self.builder = builder

    @abstractmethod
    async def get_or_create(self, revision: Revision, source_dir: Path) -> Archive:
        """Return the archive for ``revision``, building it when needed.

        Raises:
            BuildError: The archive could not be built or stored.
        """
        ...

    async def release(self, archive: Archive) -> None:
        """Called after ``archive`` has been served (or failed to be)."""
        if not archive.transient:
            return
        try:
            await asyncio.to_thread(archive.path.unlink, missing_ok=True)
            logger.debug("Removed served archive %s", archive.path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", archive.path, e)

    async def _build_into(self, source_dir: Path, target: Path, staging: Path) -> int:
        """Build into ``staging`` and move it to ``target``; returns the size."""
        try:
            await self.builder.build(source_dir, staging)
            if staging != target:
                await asyncio.to_thread(os.replace, staging, target)
            return await asyncio.to_thread(lambda: target.stat().st_size)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise


class PersistentArchiveCache(ArchiveCache):
    """One archive per revision, kept on disk until pruned."""

    def __init__(self, archive_dir: Path, builder: ArchiveBuilder) -> None:
        super().__init__(builder)
        self.archive_dir = archive_dir
        self._locks = KeyedLock()
        self.builds = 0

    def path_for(self, revision: Revision) -> Path:
        return self.archive_dir / archive_name(revision)

    async def get_or_create(self, revision: Revision, source_dir: Path) -> Archive:
        path = self.path_for(revision)
        async with self._locks.hold(revision.short):
            try:
                size = await asyncio.to_thread(_size_or_none, path)
                if size is not None:
                    logger.info("Archive %s already exists, serving", path.name)
                    return Archive(path=path, revision=revision, size=size)

                logger.info("No archive for %s, creating", revision.short)
                await asyncio.to_thread(self.archive_dir.mkdir, parents=True, exist_ok=True)
                staging = self.archive_dir / f".{ARCHIVE_PREFIX}{revision.short}-{secrets.token_hex(4)}.tmp"
                size = await self._build_into(source_dir, path, staging)
            except OSError as e:
                raise BuildError(f"Failed to store archive {path}: {e}") from e
            self.builds += 1
            return Archive(path=path, revision=revision, size=size)

    def list_archives(self) -> list[Path]:
        """Cached archives on disk, oldest first."""
        if not self.archive_dir.is_dir():
            return []
        paths = self.archive_dir.glob(f"{ARCHIVE_PREFIX}*{ARCHIVE_SUFFIX}")
        return sorted((p for p in paths if p.is_file()), key=lambda p: p.stat().st_mtime)

    def prune(self, keep: Revision | None = None) -> list[Path]:
        """Delete cached archives except the one for ``keep``."""
        keep_path = self.path_for(keep) if keep is not None else None
        removed = []
        for path in self.list_archives():
            if path == keep_path:
                continue
            path.unlink(missing_ok=True)
            removed.append(path)
        logger.info("Pruned %d archive(s)", len(removed))
        return removed


class TransientArchiveCache(ArchiveCache):
    """Fresh archive per request; nothing is reused."""

    def __init__(self, builder: ArchiveBuilder, temp_dir: Path | None = None) -> None:
        super().__init__(builder)
        self.temp_dir = temp_dir or Path(tempfile.gettempdir())

    async def get_or_create(self, revision: Revision, source_dir: Path) -> Archive:
        path = self.temp_dir / archive_name(revision, secrets.token_urlsafe(8))
        try:
            # Random suffix makes a collision unlikely, but never append to a stale file
            await asyncio.to_thread(path.unlink, missing_ok=True)
            size = await self._build_into(source_dir, path, path)
        except OSError as e:
            raise BuildError(f"Failed to store archive {path}: {e}") from e
        return Archive(path=path, revision=revision, size=size, transient=True)
