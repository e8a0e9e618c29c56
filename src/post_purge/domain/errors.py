"""Domain exceptions for deletion jobs and upstream API calls."""

from __future__ import annotations


class DeletionJobError(Exception):
    """Base class for deletion job errors."""


class DeletionJobNotFoundError(DeletionJobError):
    """Raised when a deletion job cannot be found for the caller."""


class AuthRequiredError(DeletionJobError):
    """Raised when no valid bearer credential is present."""


class UpstreamError(Exception):
    """Base class for failures reported by the remote content API."""


class UpstreamRateLimitedError(UpstreamError):
    """Raised when the provider answers with HTTP 429."""

    def __init__(self, message: str, retry_after_seconds: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class UpstreamNotFoundError(UpstreamError):
    """Raised when the targeted remote item does not exist."""


class UpstreamTransientError(UpstreamError):
    """Raised for failures that may succeed on a later attempt."""


class UpstreamFatalError(UpstreamError):
    """Raised for failures that retrying will not fix."""


__all__ = [
    "AuthRequiredError",
    "DeletionJobError",
    "DeletionJobNotFoundError",
    "UpstreamError",
    "UpstreamFatalError",
    "UpstreamNotFoundError",
    "UpstreamRateLimitedError",
    "UpstreamTransientError",
]
