"""Supported database dialects."""

from enum import Enum


class DialectType(str, Enum):
    """Database engines with a dialect adapter.

    The values double as the ``type`` setting accepted from configuration
    (matching is case-insensitive).
    """

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"
    ORACLE = "oracle"
    DB2 = "db2"
    FIREBIRD = "firebird"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None
