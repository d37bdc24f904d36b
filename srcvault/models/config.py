"""Service configuration model."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError

from srcvault.exceptions import ConfigError

# Environment variable -> field name
ENV_FIELDS: dict[str, str] = {
    "GIT_REPO_PATH": "repo_path",
    "BRANCH_NAME": "branch",
    "SRC_FOLDER": "src_folder",
    "TOKEN": "token",
    "PORT": "port",
    "HOST": "host",
    "GIT_REMOTE": "remote",
    "ARCHIVE_DIR": "archive_dir",
    "ARCHIVE_POLICY": "archive_policy",
    "SYNC_CHECK": "sync_check",
    "COMMAND_TIMEOUT": "command_timeout",
    "LOG_LEVEL": "log_level",
}

REQUIRED_ENV = ["GIT_REPO_PATH", "BRANCH_NAME", "SRC_FOLDER", "TOKEN"]


class ServerConfig(BaseModel):
    """Immutable process-wide settings, built once at startup."""

    repo_path: Path = Field(..., description="Working copy managed by the service")
    branch: str = Field(..., min_length=1, description="Tracked branch")
    src_folder: str = Field(
        ..., min_length=1, description="Folder to archive, absolute or relative to repo_path"
    )
    token: str = Field(..., min_length=1, repr=False, description="Shared secret for the auth header")
    port: int = Field(default=3000, ge=0, le=65535)
    host: str = Field(default="127.0.0.1")
    remote: str = Field(default="origin")
    archive_dir: Path | None = Field(
        default=None, description="Where persistent archives live (default: repo_path)"
    )
    archive_policy: Literal["persistent", "transient"] = "persistent"
    sync_check: Literal["status", "revision"] = "status"
    command_timeout: float = Field(default=120.0, gt=0, description="Seconds per git/tar call")
    log_level: str = Field(default="INFO")

    model_config = {"frozen": True}

    @property
    def source_dir(self) -> Path:
        """Absolute folder to archive; '.' means the whole working copy."""
        src = Path(self.src_folder)
        if not src.is_absolute():
            src = self.repo_path / src
        return Path(os.path.normpath(src.absolute()))

    @property
    def cache_dir(self) -> Path:
        return self.archive_dir if self.archive_dir is not None else self.repo_path

    @staticmethod
    def read_yaml(path: Path) -> dict[str, Any]:
        """Read raw settings from a YAML file keyed by field name."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @classmethod
    def load(
        cls,
        config_file: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "ServerConfig":
        """Build the configuration from an optional YAML file and the environment.

        Environment variables override values from the file. Empty variables
        count as unset.
        """
        environ = os.environ if environ is None else environ
        data: dict[str, Any] = cls.read_yaml(config_file) if config_file else {}

        for env_name, field_name in ENV_FIELDS.items():
            value = environ.get(env_name)
            if value:
                data[field_name] = value

        missing = [name for name in REQUIRED_ENV if not data.get(ENV_FIELDS[name])]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}",
                recovery_hint="Set them in the environment, a .env file or --config",
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
