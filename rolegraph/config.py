"""
Configuration for rolegraph

Settings are read with Pydantic BaseSettings and can be overridden via
environment variables with the ROLEGRAPH_ prefix.

Usage:
    from rolegraph.config import get_settings

    settings = get_settings()
    print(settings.superuser_id)
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RBACSettings(BaseSettings):
    """
    Runtime configuration

    Example: ROLEGRAPH_SUPERUSER_ID=root ROLEGRAPH_EXPLAIN_ENABLED=1
    """

    model_config = SettingsConfigDict(
        env_prefix="ROLEGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    superuser_id: Optional[str] = Field(
        default="superuser",
        description="Actor that bypasses every check (empty disables it)"
    )

    admin_role: str = Field(
        default="admin",
        description="Administrative role seeded by init_store and protected from deletion"
    )

    explain_enabled: bool = Field(
        default=False,
        description="Enable explain_permission diagnostics"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    db_path: Optional[Path] = Field(
        default=None,
        description="SQLite database used by SQLiteStore when no path is given"
    )

    @field_validator("superuser_id", mode="after")
    @classmethod
    def empty_superuser_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("admin_role", mode="after")
    @classmethod
    def validate_admin_role(cls, v: str) -> str:
        if not v:
            raise ValueError("admin_role must not be empty")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache()
def get_settings() -> RBACSettings:
    """
    Get cached settings instance (singleton pattern)

    Returns:
        RBACSettings: Package settings
    """
    return RBACSettings()
