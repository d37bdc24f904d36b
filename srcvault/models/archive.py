"""Revision and archive models."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

SHORT_REVISION_LENGTH = 7
ARCHIVE_MEDIA_TYPE = "application/gzip"

_HEX = re.compile(r"^[0-9a-f]+$")


class Revision(BaseModel):
    """A resolved commit of the working copy."""

    full: str = Field(..., description="Full commit hash as printed by git")

    model_config = {"frozen": True}

    @field_validator("full")
    @classmethod
    def _check_hash(cls, value: str) -> str:
        value = value.strip().lower()
        if len(value) < SHORT_REVISION_LENGTH or not _HEX.match(value):
            raise ValueError(f"not a commit hash: {value!r}")
        return value

    @property
    def short(self) -> str:
        """Cache key: the first seven characters of the hash."""
        return self.full[:SHORT_REVISION_LENGTH]

    def __str__(self) -> str:
        return self.short


class Archive(BaseModel):
    """A built tar.gz of the source folder at one revision."""

    path: Path
    revision: Revision
    size: int = Field(..., ge=0)
    media_type: str = ARCHIVE_MEDIA_TYPE
    transient: bool = Field(
        default=False, description="Delete the file once it has been served"
    )

    @property
    def filename(self) -> str:
        return self.path.name
