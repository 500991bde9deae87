"""Hunt engine configuration using Pydantic Settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HuntEngineConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "huntengine"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # Database
    database_url: str = "sqlite+aiosqlite:///./huntengine.db"
    db_wal_mode: bool = True
    db_busy_timeout: int = 5000  # milliseconds
    db_synchronous: str = "NORMAL"

    # Hunt execution
    hunt_max_concurrency: int = 4  # concurrent source queries per hunt
    source_timeout_seconds: float = 30.0

    # Result caps per source query, truncation is silent to callers
    inventory_result_cap: int = 100
    log_result_cap: int = 500
    quick_search_result_cap: int = 100

    @field_validator(
        "hunt_max_concurrency",
        "inventory_result_cap",
        "log_result_cap",
        "quick_search_result_cap",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("source_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("source_timeout_seconds must be greater than zero")
        return v

    @field_validator("db_synchronous")
    @classmethod
    def validate_synchronous(cls, v: str) -> str:
        allowed = {"OFF", "NORMAL", "FULL", "EXTRA"}
        if v.upper() not in allowed:
            raise ValueError(f"db_synchronous must be one of {allowed}")
        return v.upper()


def get_config() -> HuntEngineConfig:
    """Factory function to create config instance."""
    return HuntEngineConfig()
