"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the stock engine and its web layer."""

    model_config = SettingsConfigDict(
        env_prefix="KONSUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="Konsut Stock",
        description="Human friendly name for the application.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag.",
    )
    storage_backend: Literal["file", "sqlite", "memory"] = Field(
        default="file",
        description="Key-value medium backing the catalog, rate and draft.",
    )
    storage_dir: Path = Field(
        default=Path("./data"),
        description="Directory holding one JSON file per key for the file backend.",
    )
    database_url: str = Field(
        default="sqlite:///./data/konsut_stock.db",
        description="SQLAlchemy URL used by the sqlite backend.",
    )
    default_currency_rate: float = Field(
        default=130.0,
        gt=0,
        description="Ksh per USD used until the user enters a rate.",
    )
    secret_key: str = Field(
        default="konsut-stock-secret-key",
        description="Flask session signing key.",
    )
    admin_username: str = "admin"
    admin_password: str = "admin"
    user_username: str = "user"
    user_password: str = "user"
    log_level: str = Field(default="INFO", description="Root logging level.")

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError(
                "SQLite database URLs should be in the form sqlite:///path/to/db"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
