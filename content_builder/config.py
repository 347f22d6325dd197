"""Content builder configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuilderSettings(BaseSettings):
    """Content builder settings, read from ``CONTENT_BUILDER_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_BUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    # Save staleness
    save_stale_after_minutes: int = Field(
        default=5, ge=0, description="Minutes after the last save before a save is needed"
    )

    # Collaboration
    collaborator_active_minutes: int = Field(
        default=5, ge=0, description="Presence window for active collaborators"
    )

    # Sessions
    active_session_hours: int = Field(
        default=8, ge=0, description="Inactivity window for active sessions"
    )
    long_session_minutes: int = Field(default=120, description="Long session threshold")
    quick_session_minutes: int = Field(default=30, description="Quick session threshold")

    # Quality
    min_content_for_quality: int = Field(
        default=5, ge=1, description="Selected items needed for the content volume bonus"
    )


@lru_cache()
def get_settings() -> BuilderSettings:
    """Get builder settings (cached)."""
    return BuilderSettings()
