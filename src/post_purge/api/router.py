"""Top-level API router composition."""

from fastapi import APIRouter

from post_purge.api.routes import auth_router, deletion_router, health_router, posts_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(posts_router)
api_router.include_router(deletion_router)

__all__ = ["api_router"]
