"""
Application settings with Pydantic v2 validation.

Every concern reads its own environment prefix; ``Settings`` also reads a
``.env`` file from the working directory.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventory_ledger import __version__


class StorageSettings(BaseSettings):
    """SQLite database location and connection tuning."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "ledger.db"

    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = Field(default=30000, ge=0)  # ms
    synchronous: Literal["OFF", "NORMAL", "FULL"] = "NORMAL"

    # Copy the database file aside while migrations run
    backup_before_migrate: bool = True

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class APISettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]

    # Sent as Retry-After on 503 responses
    retry_after_seconds: int = Field(default=1, ge=0)


class LedgerSettings(BaseSettings):
    """Inventory ledger behaviour."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    # Seconds to wait for a per-ingredient lock before giving up
    lock_timeout: float = Field(default=10.0, gt=0)

    default_page_size: int = Field(default=50, ge=1)
    max_page_size: int = Field(default=200, ge=1)

    # None: each account's own min_stock
    low_stock_default_threshold: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_page_sizes(self) -> "LedgerSettings":
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must not exceed max_page_size")
        return self


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Inventory Ledger Service"
    app_version: str = __version__
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool | None = None  # default: JSON outside development

    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        storage = StorageSettings(**v) if isinstance(v, dict) else (v or StorageSettings())
        storage.data_dir.mkdir(parents=True, exist_ok=True)
        return storage

    @property
    def json_logs(self) -> bool:
        if self.log_json is not None:
            return self.log_json
        return self.environment != "development"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
