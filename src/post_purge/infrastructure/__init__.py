"""Infrastructure layer public API."""

from post_purge.infrastructure.repositories import InMemoryDeletionJobRepository
from post_purge.infrastructure.x_api import XApiClient, XOAuthClient, XOAuthError

__all__ = [
    "InMemoryDeletionJobRepository",
    "XApiClient",
    "XOAuthClient",
    "XOAuthError",
]
