"""Working copy synchronization and revision lookup."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from srcvault.exceptions import CommandError, ResolveError, SyncError
from srcvault.models.archive import Revision
from srcvault.runner import CommandRunner

logger = logging.getLogger(__name__)


class UpToDateCheck(ABC):
    """Decides whether the local branch already matches its remote counterpart."""

    @abstractmethod
    async def is_up_to_date(self, client: RepositorySyncClient) -> bool:
        ...


class StatusMessageCheck(UpToDateCheck):
    """Looks for git's "up to date" line in ``git status`` output."""

    async def is_up_to_date(self, client: RepositorySyncClient) -> bool:
        status = await client.git("status")
        marker = f"Your branch is up to date with '{client.remote}/{client.branch}'"
        return marker in status


class RevisionCompareCheck(UpToDateCheck):
    """Compares the HEAD hash with the remote-tracking branch hash."""

    async def is_up_to_date(self, client: RepositorySyncClient) -> bool:
        local = await client.git("rev-parse", "HEAD")
        remote = await client.git("rev-parse", f"{client.remote}/{client.branch}")
        return local.strip() == remote.strip()


UP_TO_DATE_CHECKS: dict[str, type[UpToDateCheck]] = {
    "status": StatusMessageCheck,
    "revision": RevisionCompareCheck,
}


class RepositorySyncClient:
    """Keeps the working copy current with its remote branch.

    Only this class mutates the working copy. It does not serialize callers;
    ``SrcVault`` holds the working-copy lock around ``sync`` and
    ``resolve_revision``.
    """

    def __init__(
        self,
        repo_path: Path,
        branch: str,
        runner: CommandRunner,
        *,
        remote: str = "origin",
        check: UpToDateCheck | None = None,
        timeout: float | None = None,
    ) -> None:
        self.repo_path = repo_path
        self.branch = branch
        self.remote = remote
        self.runner = runner
        self.check = check or StatusMessageCheck()
        self.timeout = timeout

    async def git(self, *args: str) -> str:
        """Run a git subcommand against the working copy and return stdout."""
        result = await self.runner.run(
            ["git", "-C", str(self.repo_path), *args], timeout=self.timeout
        )
        return result.stdout

    async def sync(self) -> None:
        """Fetch the remote and pull the branch if the working copy is behind."""
        try:
            await self.git("fetch", self.remote)
            if await self.check.is_up_to_date(self):
                logger.debug("Working copy is up to date with %s/%s", self.remote, self.branch)
                return
            logger.info("Repo not in sync, pulling %s/%s", self.remote, self.branch)
            await self.git("pull", self.remote, self.branch)
        except CommandError as e:
            raise SyncError(f"Failed to sync {self.repo_path}: {e}") from e

    async def resolve_revision(self) -> Revision:
        """Return the commit currently checked out."""
        try:
            output = await self.git("rev-parse", "HEAD")
        except CommandError as e:
            raise ResolveError(f"Failed to resolve HEAD in {self.repo_path}: {e}") from e
        try:
            return Revision(full=output.strip())
        except ValidationError as e:
            raise ResolveError(f"Unexpected rev-parse output: {output.strip()!r}") from e
