"""Data models for srcvault."""

from srcvault.models.archive import ARCHIVE_MEDIA_TYPE, Archive, Revision
from srcvault.models.config import ServerConfig

__all__ = [
    "ARCHIVE_MEDIA_TYPE",
    "Archive",
    "Revision",
    "ServerConfig",
]
