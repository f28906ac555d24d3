"""
Package settings loaded from ``HAM_RELATIONS_*`` environment variables.

Settings are read once and cached; ``reload_settings()`` reads them again.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "HAM_RELATIONS_"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
    )

    log_level: int = Field(default=logging.WARNING, description="Console log level (name or number)")
    log_dir: Optional[str] = Field(default=None, description="Directory for daily log files; unset disables them")
    log_console: bool = Field(default=True, description="Log to the console")
    database_url: str = Field(default="sqlite:///:memory:", description="Default URL for Database()")

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_level(cls, value):
        if isinstance(value, int):
            return value
        value = str(value).strip()
        if value.isdigit():
            return int(value)
        level = logging.getLevelName(value.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @field_validator("log_dir", mode="before")
    @classmethod
    def empty_dir_is_unset(cls, value):
        return value or None


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and read the environment again."""
    get_settings.cache_clear()
    return get_settings()
