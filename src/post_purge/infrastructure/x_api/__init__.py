"""X API infrastructure adapters."""

from post_purge.infrastructure.x_api.client import XApiClient
from post_purge.infrastructure.x_api.oauth import (
    AuthorizationRequest,
    XOAuthClient,
    XOAuthError,
)

__all__ = ["AuthorizationRequest", "XApiClient", "XOAuthClient", "XOAuthError"]
