"""
Configuration for the Household Tracker.

Uses pydantic-settings so every value can come from the environment
(prefix HOUSEHOLD_) or a local .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSEHOLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="household-tracker")
    app_version: str = Field(default="0.1.0")

    # List endpoint paging
    default_page_size: int = Field(default=20, ge=1, le=100)
    max_page_size: int = Field(default=100, ge=1, le=100)

    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=True,
        description="Render log lines as JSON (False = human-readable console output)",
    )

    # Startup data
    seed_file: Optional[str] = Field(
        default=None,
        description="JSON file with categories/transactions/subscriptions to load at startup",
    )
    seed_default_categories: bool = Field(default=True)

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Call get_settings.cache_clear() after changing env vars."""
    return Settings()
