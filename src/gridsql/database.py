"""Database facade.

``Database`` owns one SQLAlchemy connection and the dialect adapter for it.
It creates ``Query`` builders, runs their statements with logging, metrics and
error wrapping, and offers shortcuts for the common single statement cases.

Example:
    >>> from gridsql import Database
    >>> db = Database({"type": "sqlite", "database": ":memory:"})
    >>> db.sql("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    >>> db.insert("users", {"name": "Ann"}).insert_id()
    1
    >>> db.select("users", ["id", "name"], {"id": 1}).fetch()
    {'id': 1, 'name': 'Ann'}
"""

import json
import sys
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.engine import Connection, Engine

from gridsql.common.exceptions import (
    GridSQLError,
    configuration_error,
    statement_execution_failure,
    validation_error,
)
from gridsql.constants.dialect import DialectType
from gridsql.constants.sql import StatementKind
from gridsql.logging import get_logger
from gridsql.query_builder.base import Query
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.factory import DialectFactory
from gridsql.query_builder.result import Result
from gridsql.settings.database import DatabaseSettings
from gridsql.telemetry import get_meter

logger = get_logger(__name__)

_meter = get_meter(__name__)
_statement_counter = _meter.create_counter(
    "gridsql.db.statements",
    unit="1",
    description="Statements executed, by dialect, operation and outcome",
)

_WRITE_KINDS = {
    StatementKind.INSERT.value,
    StatementKind.UPDATE.value,
    StatementKind.DELETE.value,
}

DebugCallback = Callable[[Dict[str, Any]], Any]


def _database_settings(values: Mapping[str, Any]) -> DatabaseSettings:
    try:
        return DatabaseSettings(**values)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise configuration_error(
            f"Invalid database settings: {first['msg']}",
            config_key=".".join(str(part) for part in first["loc"]),
            details={"errors": exc.error_count()},
        ) from exc


class Database:
    """Connection, dialect and statement execution for one database.

    Args:
        settings: Connection credentials. A mapping is validated as
            ``DatabaseSettings``; ``None`` reads ``get_settings().database``.
        connection: Existing SQLAlchemy ``Connection`` or ``Engine`` to use
            instead of connecting from ``settings``
        dialect: Dialect of ``connection``. Defaults to the settings' type.

    Raises:
        GridSQLError: CONFIG_ERROR for invalid settings, PLATFORM_NOT_SUPPORTED
            for an unknown dialect, and
            CONNECTION_FAILURE when connecting fails and
            ``abort_on_connect_failure`` is off.
    """

    def __init__(
        self,
        settings: Union[DatabaseSettings, Mapping[str, Any], None] = None,
        *,
        connection: Union[Connection, Engine, None] = None,
        dialect: Union[DialectType, str, None] = None,
    ):
        if settings is None and connection is None:
            from gridsql.settings import get_settings

            settings = get_settings().database
        elif isinstance(settings, Mapping):
            settings = _database_settings(settings)

        self._settings: Optional[DatabaseSettings] = settings
        self._adapter: DialectAdapter = DialectFactory.create(
            dialect if dialect is not None else (settings.type if settings else DialectType.SQLITE)
        )
        self._engine: Optional[Engine] = None
        self._debug_callback: Optional[DebugCallback] = None
        self._in_transaction = False

        if connection is not None:
            if isinstance(connection, Engine):
                self._engine = connection
                connection = connection.connect()
            self._connection: Connection = connection
        else:
            self._engine, self._connection = self._connect(settings)

    def _connect(self, settings: DatabaseSettings):
        try:
            return self._adapter.connect(settings)
        except GridSQLError as err:
            if not settings.abort_on_connect_failure:
                raise

            sys.stdout.write(json.dumps({"error": err.message}))
            sys.stdout.flush()
            sys.exit(1)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def type(self) -> DialectType:
        return self._adapter.type

    @property
    def dialect(self) -> DialectAdapter:
        return self._adapter

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def in_transaction(self) -> bool:
        """Whether an explicit transaction started by ``transaction`` is open."""
        return self._in_transaction

    def close(self) -> None:
        """Close the connection and dispose of the engine created for it."""
        self._connection.close()
        if self._engine is not None:
            self._engine.dispose()

    # ------------------------------------------------------------------
    # Builders and shortcuts
    # ------------------------------------------------------------------

    def query(self, kind: Union[StatementKind, str], table: Any = None) -> Query:
        """Create a statement builder of ``kind``."""
        return Query(self, kind, table)

    def raw(self) -> Query:
        """Create a builder for a caller supplied statement."""
        return self.query(StatementKind.RAW)

    def sql(self, sql: str) -> Result:
        """Execute ``sql`` as is."""
        return self.raw().exec(sql)

    def select(
        self,
        table: Any,
        field: Any = "*",
        where: Any = None,
        order_by: Any = None,
    ) -> Result:
        return (
            self.query(StatementKind.SELECT)
            .table(table)
            .get(field)
            .where(where)
            .order(order_by)
            .exec()
        )

    def select_distinct(
        self,
        table: Any,
        field: Any = "*",
        where: Any = None,
        order_by: Any = None,
    ) -> Result:
        return (
            self.query(StatementKind.SELECT)
            .table(table)
            .distinct(True)
            .get(field)
            .where(where)
            .order(order_by)
            .exec()
        )

    def insert(self, table: Any, values: Mapping[str, Any], pkey: Any = None) -> Result:
        """Insert one row. ``pkey`` names the key column to read back."""
        return (
            self.query(StatementKind.INSERT)
            .pkey(pkey)
            .table(table)
            .set(values)
            .exec()
        )

    def update(self, table: Any, values: Optional[Mapping[str, Any]] = None, where: Any = None) -> Result:
        return (
            self.query(StatementKind.UPDATE)
            .table(table)
            .set(values)
            .where(where)
            .exec()
        )

    def delete(self, table: Any, where: Any = None) -> Result:
        return (
            self.query(StatementKind.DELETE)
            .table(table)
            .where(where)
            .exec()
        )

    def push(
        self,
        table: Any,
        values: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        pkey: Any = None,
    ) -> Result:
        """Update the rows matching ``where``, or insert one if there are none.

        On insert, ``where`` values that ``values`` does not already set are
        written too.
        """
        select_column = "*"
        if pkey:
            select_column = pkey if isinstance(pkey, str) else pkey[0]

        if self.select(table, select_column, where).count() > 0:
            return self.update(table, values, where)

        values = dict(values)
        for key, value in (where or {}).items():
            values.setdefault(key, value)

        return self.insert(table, values, pkey)

    def any(self, table: Any, where: Any = None) -> bool:
        """Whether at least one row matches ``where``."""
        result = (
            self.query(StatementKind.SELECT)
            .table(table)
            .get("*")
            .where(where)
            .limit(1)
            .exec()
        )
        return result.count() > 0

    def count(self, table: Any, field: str = "id", where: Any = None) -> int:
        result = (
            self.query(StatementKind.COUNT)
            .table(table)
            .get(field)
            .where(where)
            .exec()
        )
        row = result.fetch()
        return int(row["cnt"]) if row else 0

    def quote(self, value: Any) -> str:
        """Quote ``value`` as a string literal for this database."""
        return self._adapter.quote_value(self._connection, value)

    # ------------------------------------------------------------------
    # Debugging
    # ------------------------------------------------------------------

    def debug(self, callback: Union[DebugCallback, bool, None] = None) -> Union["Database", bool]:
        """Get or set the debug callback.

        Args:
            callback: ``None`` to ask whether debugging is on, ``False`` to
                turn it off, or a callable receiving ``{"query", "bindings"}``
                for every statement executed.

        Returns:
            A bool when called without an argument, else the database.
        """
        if callback is None:
            return self._debug_callback is not None

        if callback is False:
            self._debug_callback = None
        elif callable(callback):
            self._debug_callback = callback
        else:
            raise validation_error("Debug callback must be callable or False", field="callback")

        return self

    def debug_info(self, query: Optional[str] = None, bindings: Optional[List[Dict[str, Any]]] = None) -> "Database":
        """Pass a statement and its bindings to the debug callback, if any."""
        if self._debug_callback is not None:
            self._debug_callback({"query": query, "bindings": bindings})
        return self

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def transaction(self) -> "Database":
        """Start a transaction. Transactions do not nest."""
        self._adapter.begin(self._connection)
        self._in_transaction = True
        return self

    def commit(self) -> "Database":
        self._adapter.commit(self._connection)
        self._in_transaction = False
        return self

    def rollback(self) -> "Database":
        self._adapter.rollback(self._connection)
        self._in_transaction = False
        return self

    @contextmanager
    def transaction_scope(self) -> Iterator["Database"]:
        """Run a block in a transaction.

        Commits when the block completes and rolls back, then re-raises, when
        it raises.

        Example:
            >>> with db.transaction_scope():
            ...     db.insert("users", {"name": "Ann"})
            ...     db.insert("users", {"name": "Bob"})
        """
        self.transaction()
        try:
            yield self
        except BaseException:
            if self._in_transaction:
                self.rollback()
            raise
        else:
            self.commit()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, query: Query, sql: str) -> Result:
        """Execute the prepared ``sql`` of ``query``.

        Outside an explicit transaction, write statements are committed
        immediately. A failing statement rolls the connection back.

        Raises:
            GridSQLError: STATEMENT_EXECUTION_FAILURE with the driver's message
        """
        attributes = {
            "db.system": self._adapter.type.value,
            "db.operation": query.kind.upper(),
        }
        started = time.perf_counter()

        try:
            result = self._adapter.execute(self._connection, query, sql)

            if not self._in_transaction and self._should_commit(query, result):
                self._adapter.commit(self._connection)
        except Exception as exc:
            duration = time.perf_counter() - started
            _statement_counter.add(1, {**attributes, "outcome": "error"})
            logger.error(
                "Statement failed",
                extra={**attributes, "duration.seconds": round(duration, 6)},
            )

            self._rollback_quietly()
            self._in_transaction = False

            if isinstance(exc, GridSQLError):
                raise
            raise statement_execution_failure(sql, getattr(exc, "orig", None) or exc) from exc

        duration = time.perf_counter() - started
        _statement_counter.add(1, {**attributes, "outcome": "success"})
        logger.info(
            "Statement executed",
            extra={**attributes, "duration.seconds": round(duration, 6)},
        )
        return result

    @staticmethod
    def _should_commit(query: Query, result: Result) -> bool:
        if query.kind in _WRITE_KINDS:
            return True
        return query.kind == StatementKind.RAW.value and not result.returns_rows

    def _rollback_quietly(self) -> None:
        try:
            self._adapter.rollback(self._connection)
        except Exception as exc:
            logger.warning("Rollback after failed statement failed: %s", exc)
