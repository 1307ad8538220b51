"""
Configuration and settings for the QuestLog client core.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings (QUESTLOG_* variables or a .env file)."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_id: str = Field(default="gengemz-prod")

    # Hosted document store (Firestore)
    firebase_project_id: Optional[str] = Field(default=None)
    google_application_credentials: Optional[str] = Field(default=None)

    # Self-hosted document store (any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Game metadata search proxy
    search_endpoint: str = Field(
        default="http://127.0.0.1:5001/questlog-dev/us-central1/search_games"
    )
    search_timeout_seconds: float = Field(default=30.0, gt=0)
    search_page_size: int = Field(default=10, ge=1, le=40)

    # Proxy service: upstream metadata API
    rawg_api_key: Optional[str] = Field(default=None)
    rawg_base_url: str = Field(default="https://api.rawg.io/api/games")
    api_prefix: str = Field(default="")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Board persistence timings
    save_debounce_seconds: float = Field(default=1.0, ge=0)
    saved_status_seconds: float = Field(default=2.0, ge=0)
    initial_load_timeout_seconds: float = Field(default=3.0, ge=0)

    max_columns: int = Field(default=5, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
