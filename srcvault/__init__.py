"""srcvault - serve tarballs of a git working copy, synced on demand."""

from srcvault.models.archive import Archive, Revision
from srcvault.models.config import ServerConfig
from srcvault.service import SrcVault

__version__ = "0.1.0"
__all__ = ["Archive", "Revision", "ServerConfig", "SrcVault"]
