"""Environment-driven configuration for the production ops service.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first, then from ``.env``/``.env.local`` files, and fall
back to defaults that let the app boot in development with a SQLite file under
``DATA_DIR``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Bag Production Ops"
    APP_ENV: str = "dev"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TZ: str = "Asia/Kolkata"

    # Empty means "SQLite file inside DATA_DIR", resolved in ``database_url``.
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089
    LOG_LEVEL: str = "INFO"
    # Comma separated list of origins allowed by CORS
    ALLOWED_ORIGINS: str = ""

    # Transaction reconciliation tuning
    DEDUP_WINDOW_SECONDS: int = 60
    DEDUP_TOLERANCE: float = 0.01

    # Number of inventory change events kept for replay
    CHANGE_FEED_HISTORY: int = 500

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'ops.db'}"

    @property
    def allowed_origins(self) -> list[str]:
        return [item.strip() for item in self.ALLOWED_ORIGINS.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


# Importing ``settings`` anywhere gives the configured values without
# rebuilding the object each time.
settings = get_settings()
