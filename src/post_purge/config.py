"""Application settings."""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "X Post Purge"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 3000
    base_url: str = "http://localhost:3000"
    x_client_id: str | None = None
    x_redirect_uri: str | None = None
    x_scopes: str = "tweet.read tweet.write users.read offline.access"
    x_api_base_url: str = "https://api.x.com"
    x_authorize_url: str = "https://twitter.com/i/oauth2/authorize"
    x_timeout_seconds: float = 10.0
    session_secret: str = "change-this-super-secret"
    session_cookie_name: str = "xlogin.sid"
    session_max_age_seconds: int = 900
    session_https_only: bool = False
    deletion_page_size: int = 100
    deletion_max_pages: int = 10
    deletion_pacing_seconds: float = 1.5
    deletion_rate_limit_cooldown_seconds: float = 120.0
    deletion_transient_retry_attempts: int = 2
    deletion_transient_retry_backoff_seconds: float = 1.0
    deletion_call_timeout_seconds: float = 15.0
    deletion_job_retention_seconds: float = 3600.0
    deletion_job_reaper_interval_seconds: float = 60.0

    @property
    def effective_redirect_uri(self) -> str:
        """Redirect URI registered with X, derived from base_url when unset."""

        if self.x_redirect_uri:
            return self.x_redirect_uri
        return f"{self.base_url.strip().rstrip('/')}/callback"

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject values the deletion engine cannot work with."""

        if not self.session_secret.strip():
            raise ValueError("POST_PURGE_SESSION_SECRET cannot be empty.")
        if self.session_max_age_seconds < 1:
            raise ValueError("POST_PURGE_SESSION_MAX_AGE_SECONDS must be >= 1.")
        if self.x_timeout_seconds <= 0:
            raise ValueError("POST_PURGE_X_TIMEOUT_SECONDS must be > 0.")
        if not 5 <= self.deletion_page_size <= 100:
            raise ValueError("POST_PURGE_DELETION_PAGE_SIZE must be between 5 and 100.")
        if self.deletion_max_pages < 1:
            raise ValueError("POST_PURGE_DELETION_MAX_PAGES must be >= 1.")
        if self.deletion_pacing_seconds < 0:
            raise ValueError("POST_PURGE_DELETION_PACING_SECONDS must be >= 0.")
        if self.deletion_rate_limit_cooldown_seconds < 1:
            raise ValueError("POST_PURGE_DELETION_RATE_LIMIT_COOLDOWN_SECONDS must be >= 1.")
        if self.deletion_transient_retry_attempts < 0:
            raise ValueError("POST_PURGE_DELETION_TRANSIENT_RETRY_ATTEMPTS must be >= 0.")
        if self.deletion_transient_retry_backoff_seconds < 0:
            raise ValueError("POST_PURGE_DELETION_TRANSIENT_RETRY_BACKOFF_SECONDS must be >= 0.")
        if self.deletion_call_timeout_seconds <= 0:
            raise ValueError("POST_PURGE_DELETION_CALL_TIMEOUT_SECONDS must be > 0.")
        if self.deletion_job_retention_seconds < 0:
            raise ValueError("POST_PURGE_DELETION_JOB_RETENTION_SECONDS must be >= 0.")
        if self.deletion_job_reaper_interval_seconds <= 0:
            raise ValueError("POST_PURGE_DELETION_JOB_REAPER_INTERVAL_SECONDS must be > 0.")
        return self

    model_config = SettingsConfigDict(env_prefix="POST_PURGE_", extra="ignore")


__all__ = ["Settings"]
