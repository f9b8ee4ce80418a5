"""Dialect Adapter Factory.

This module maps a ``DialectType`` (or its string name) to the adapter that
renders and executes statements for that engine.
"""

from typing import Dict, Type, Union

from gridsql.common.exceptions import platform_not_supported_error
from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects import (
    DB2Adapter,
    DialectAdapter,
    FirebirdAdapter,
    MySQLAdapter,
    OracleAdapter,
    PostgresAdapter,
    SQLiteAdapter,
    SQLServerAdapter,
)

_ADAPTERS: Dict[DialectType, Type[DialectAdapter]] = {
    DialectType.MYSQL: MySQLAdapter,
    DialectType.POSTGRES: PostgresAdapter,
    DialectType.SQLITE: SQLiteAdapter,
    DialectType.SQLSERVER: SQLServerAdapter,
    DialectType.ORACLE: OracleAdapter,
    DialectType.DB2: DB2Adapter,
    DialectType.FIREBIRD: FirebirdAdapter,
}


class DialectFactory:
    """Factory for creating dialect adapters.

    Example:
        >>> adapter = DialectFactory.create("Postgres")
        >>> adapter.quoter.quote("users.id")
        '"users"."id"'
    """

    @staticmethod
    def create(dialect: Union[DialectType, str]) -> DialectAdapter:
        """Create the adapter for ``dialect``.

        Args:
            dialect: Dialect type or name (case-insensitive)

        Returns:
            A new adapter instance.

        Raises:
            GridSQLError: PLATFORM_NOT_SUPPORTED for an unknown dialect name.
        """
        try:
            dialect_type = DialectType(dialect)
        except ValueError as exc:
            raise platform_not_supported_error(str(dialect), cause=exc) from exc

        return _ADAPTERS[dialect_type]()

    @staticmethod
    def supported() -> Dict[DialectType, Type[DialectAdapter]]:
        """Registered adapters keyed by dialect type."""
        return dict(_ADAPTERS)
