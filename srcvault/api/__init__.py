"""HTTP interface for srcvault."""

from srcvault.api.app import create_app
from srcvault.api.routes import create_router

__all__ = ["create_app", "create_router"]
