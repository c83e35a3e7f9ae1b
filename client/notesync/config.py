"""
NoteSync - Client Configuration
================================

What:  Centralized configuration management using Pydantic Settings.
How:   Values come from environment variables (or a .env file), are validated
       on load, and are exposed through the singleton `settings` object.
Who:   Imported by the composition root and by services for their defaults.

Timing values are in seconds. Tests build their own `Settings(...)` with
shrunken delays and pass it to `create_client()`.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.

    Attributes are grouped by concern.
    """

    # ── Backend API ───────────────────────────────────────────────────────
    # Every REST path is resolved against this base
    api_base_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the notes/bookmarks REST API",
    )

    # Per-request timeout passed to httpx
    request_timeout: float = Field(default=10.0, gt=0, le=120)

    # ── Retry on rate limiting ────────────────────────────────────────────
    # Attempts in total (first call included); retry i waits 2^i * base
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0, le=30)

    # ── Refresh scheduling ────────────────────────────────────────────────
    # Debounce window measured from the last refresh request of a burst
    refresh_quiet_window: float = Field(default=0.3, ge=0, le=10)

    # Pause between the notes fetch and the bookmarks fetch of one cycle
    refresh_inter_fetch_delay: float = Field(default=0.5, ge=0, le=10)

    # Pause between a successful write and its confirming re-fetch
    settle_delay: float = Field(default=0.5, ge=0, le=10)

    # ── Session persistence ───────────────────────────────────────────────
    session_file: str = Field(default="~/.notesync/session.json")

    @property
    def session_path(self) -> Path:
        """Session file location with `~` expanded."""
        return Path(self.session_file).expanduser()

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Requires an absolute http(s) URL and drops any trailing slash."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"Invalid api_base_url '{v}'. Must start with http:// or https://")
        return stripped

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # API_BASE_URL and api_base_url both work
    }


# Singleton instance, imported throughout the package
settings = Settings()
