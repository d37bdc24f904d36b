"""Archive building and caching."""

from srcvault.archive.builder import ArchiveBuilder
from srcvault.archive.cache import (
    ArchiveCache,
    PersistentArchiveCache,
    TransientArchiveCache,
    archive_name,
)
from srcvault.archive.locks import KeyedLock

__all__ = [
    "ArchiveBuilder",
    "ArchiveCache",
    "KeyedLock",
    "PersistentArchiveCache",
    "TransientArchiveCache",
    "archive_name",
]
