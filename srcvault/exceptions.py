"""Exception hierarchy for srcvault."""

from __future__ import annotations


class SrcVaultError(Exception):
    """Base exception for all srcvault errors."""

    def __init__(self, message: str, recovery_hint: str | None = None) -> None:
        super().__init__(message)
        self.recovery_hint = recovery_hint

    def __str__(self) -> str:
        base = super().__str__()
        if self.recovery_hint:
            return f"{base}\nHint: {self.recovery_hint}"
        return base


class ConfigError(SrcVaultError):
    """Missing or invalid configuration."""


class AuthError(SrcVaultError):
    """Missing or mismatched auth token."""


class CommandError(SrcVaultError):
    """An external command failed or could not be started."""

    def __init__(
        self,
        message: str,
        args: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.cmd = list(args or [])
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeout(CommandError):
    """An external command exceeded its time limit."""


class SyncError(SrcVaultError):
    """Fetching, inspecting or pulling the working copy failed."""


class ResolveError(SrcVaultError):
    """The current revision could not be determined."""


class BuildError(SrcVaultError):
    """The archive could not be created."""
