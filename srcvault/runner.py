"""External command execution.

Everything srcvault does to the working copy or the archive goes through a
``CommandRunner``, so components can be exercised with a fake runner instead
of real ``git`` and ``tar`` binaries.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from srcvault.exceptions import CommandError, CommandTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str


def format_command(args: list[str]) -> str:
    return " ".join(shlex.quote(a) for a in args)


def headless_env() -> dict[str, str]:
    """Environment overrides for commands run without a terminal.

    Git must never prompt for credentials, and its messages must stay in the
    untranslated form so status text can be matched.
    """
    return {
        "GIT_TERMINAL_PROMPT": "0",
        "GIT_ASKPASS": os.environ.get("GIT_ASKPASS", "echo"),
        "LC_ALL": "C",
        "LANG": "C",
    }


class CommandRunner(ABC):
    """Runs an external command and captures its output."""

    @abstractmethod
    async def run(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``args`` and return the result.

        Raises:
            CommandError: The command exited non-zero or could not start.
            CommandTimeout: The command did not finish within ``timeout``.
        """
        ...


class SubprocessRunner(CommandRunner):
    """Runs commands as child processes on the event loop."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = {**os.environ, **headless_env(), **(env or {})}

    async def run(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        cmd = format_command(args)
        logger.debug("Running %s", cmd)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=cwd,
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Failed to start {cmd}: {e}", args) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError as e:
            raise CommandTimeout(f"Timed out after {timeout}s: {cmd}", args) from e
        finally:
            # Timed out or cancelled: never leave the child running
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        result = CommandResult(
            args=list(args),
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        if result.returncode != 0:
            raise CommandError(
                f"{cmd} exited with status {result.returncode}: {result.stderr.strip()}",
                args,
                result.returncode,
                result.stderr,
            )
        return result
