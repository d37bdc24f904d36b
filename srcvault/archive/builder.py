"""tar.gz creation through the ``tar`` command."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from srcvault.exceptions import BuildError, CommandError
from srcvault.runner import CommandRunner

logger = logging.getLogger(__name__)

# Cached archives and in-progress builds, kept out of whole-repo archives
EXCLUDE_PATTERNS = ("src-*.tar.gz", ".src-*.tmp")


class ArchiveBuilder:
    """Compresses a folder into a gzip tarball.

    The archive is created from the folder's parent so members are rooted at
    the folder's own name: archiving ``/home/user/src`` yields ``src/...``
    entries rather than ``home/user/src/...``.
    """

    def __init__(self, runner: CommandRunner, timeout: float | None = None) -> None:
        self.runner = runner
        self.timeout = timeout

    def command(self, source_dir: Path, dest_path: Path) -> list[str]:
        args = ["tar", "-czf", str(dest_path)]
        args.extend(f"--exclude={pattern}" for pattern in EXCLUDE_PATTERNS)
        args.extend(["-C", str(source_dir.parent), source_dir.name])
        return args

    async def build(self, source_dir: Path, dest_path: Path) -> None:
        if not await asyncio.to_thread(source_dir.is_dir):
            raise BuildError(f"Source folder does not exist: {source_dir}")

        logger.info("Creating archive %s from %s", dest_path.name, source_dir)
        try:
            await self.runner.run(self.command(source_dir, dest_path), timeout=self.timeout)
        except CommandError as e:
            raise BuildError(f"Failed to archive {source_dir}: {e}") from e
