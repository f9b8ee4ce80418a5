from typing import Any, Dict, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import SettingsConfigDict

from gridsql.constants.dialect import DialectType
from .base import GridBaseSettings


class DatabaseSettings(GridBaseSettings):
    """Credentials consumed once when a connection is built.

    Read from ``GRIDSQL_DB_*`` environment variables (or ``.env``) when not
    constructed explicitly.
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIDSQL_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    type: DialectType = Field(
        default=DialectType.SQLITE,
        description="Database engine (mysql, postgres, sqlite, sqlserver, oracle, db2, firebird)"
    )
    user: Optional[str] = Field(default=None, description="Login user")
    password: Optional[SecretStr] = Field(default=None, description="Login password")
    host: Optional[str] = Field(default=None, description="Server host name")
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Server port")
    database: Optional[str] = Field(
        default=None,
        description="Database name. For SQLite the file path, or ':memory:'. "
                    "For Oracle the service name."
    )
    dsn: str = Field(
        default="",
        description="Extra DSN options as 'key=value;key2=value2'. They are passed to the "
                    "driver as URL query parameters (e.g. charset=utf8mb4)."
    )
    driver_attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Keyword arguments handed to the DB-API connect() call"
    )
    abort_on_connect_failure: bool = Field(
        default=True,
        description="Print the connection error payload as JSON and exit(1) when the "
                    "connection cannot be established. Disable to receive the error instead."
    )

    @field_validator("dsn", mode="before")
    @classmethod
    def _strip_dsn(cls, value: Optional[str]) -> str:
        if value is None:
            return ""
        return value.strip().strip(";")

    def dsn_options(self) -> Dict[str, str]:
        """Parse ``dsn`` into a mapping of option name to value."""
        options: Dict[str, str] = {}
        for part in self.dsn.split(";"):
            if not part.strip():
                continue
            key, _, value = part.partition("=")
            options[key.strip()] = value.strip()
        return options

    def password_value(self) -> Optional[str]:
        return self.password.get_secret_value() if self.password else None
