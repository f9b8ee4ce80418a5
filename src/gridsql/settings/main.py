from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from gridsql.constants.sql import DEFAULT_JOIN_BATCH_THRESHOLD
from .base import GridBaseSettings
from .database import DatabaseSettings


class _Settings(GridBaseSettings):

    model_config = SettingsConfigDict(
        env_prefix="GRIDSQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings,
        description="Connection credentials"
    )
    log_level: str = Field(
        default="INFO",
        description="Level handed to setup_logging()"
    )
    join_batch_threshold: int = Field(
        default=DEFAULT_JOIN_BATCH_THRESHOLD,
        ge=1,
        description="Row joins restrict their lookup to the parent keys on the current "
                    "page (WHERE IN) only when fewer parent rows than this are present"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return value


_settings: Optional[_Settings] = None


def get_settings(force_reload: bool = False) -> _Settings:
    """Get the settings singleton.

    Args:
        force_reload: Build a fresh instance from the environment

    Returns:
        _Settings: Shared settings instance

    Example:
        ```python
        settings = get_settings()
        assert get_settings() is settings
        ```
    """
    global _settings

    if _settings is None or force_reload:
        _settings = _Settings()

    return _settings


def _reload_settings() -> _Settings:
    """Drop the cached settings and rebuild them (used by tests)."""
    global _settings
    _settings = None
    return get_settings(force_reload=True)
