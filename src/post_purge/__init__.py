"""Bulk deletion of X posts behind an OAuth2 PKCE login."""

__version__ = "0.1.0"

__all__ = ["__version__"]
