"""HTTP API package."""

from post_purge.api.router import api_router

__all__ = ["api_router"]
