"""Route modules public API."""

from post_purge.api.routes.auth import router as auth_router
from post_purge.api.routes.deletion import router as deletion_router
from post_purge.api.routes.health import router as health_router
from post_purge.api.routes.posts import router as posts_router

__all__ = ["auth_router", "deletion_router", "health_router", "posts_router"]
