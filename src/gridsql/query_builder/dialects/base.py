"""Base class for dialect adapters.

A dialect adapter collects everything that differs between database engines:
identifier and alias quoting, paging syntax, how an inserted key is read back,
how the SQLAlchemy URL is put together and how transactions are started. The
``Query`` builder and the ``Database`` facade are written against this
interface only.
"""

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import String, bindparam, create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.elements import TextClause

from gridsql.common.exceptions import connection_failure
from gridsql.constants.dialect import DialectType
from gridsql.constants.sql import StatementKind
from gridsql.logging import get_logger
from gridsql.query_builder.bindings import BindingList
from gridsql.query_builder.conditions import default_fragment
from gridsql.query_builder.quoting import IdentifierQuoter
from gridsql.query_builder.result import Result
from gridsql.query_builder.strategies import LimitStrategy, PrimaryKeyStrategy
from gridsql.settings.database import DatabaseSettings

if TYPE_CHECKING:
    from gridsql.database import Database
    from gridsql.query_builder.base import Query

logger = get_logger(__name__)

_AS_RE = re.compile(r" as ", re.IGNORECASE)


class DialectAdapter(ABC):
    """SQL syntax and connection handling of one database engine.

    Subclasses declare their capabilities as class attributes and supply a
    limit strategy and a primary key strategy.

    Attributes:
        type: Dialect this adapter handles
        drivername: SQLAlchemy driver name used in the connection URL
        identifier_quote: Opening and closing identifier quote, or ``(None, None)``
        field_quote: Quote used around column aliases
        supports_as_alias: Whether ``AS`` may appear before a column alias
        result_class: Result type wrapping executed statements
    """

    type: ClassVar[DialectType]
    drivername: ClassVar[str]
    identifier_quote: ClassVar[Tuple[Optional[str], Optional[str]]] = ('"', '"')
    field_quote: ClassVar[str] = "'"
    supports_as_alias: ClassVar[bool] = True
    result_class: ClassVar[Type[Result]] = Result

    def __init__(self) -> None:
        self.quoter = IdentifierQuoter(*self.identifier_quote)
        self.limit_strategy = self._create_limit_strategy()
        self.pkey_strategy = self._create_pkey_strategy()

    @abstractmethod
    def _create_limit_strategy(self) -> LimitStrategy:
        """Return the paging strategy for this dialect."""

    @abstractmethod
    def _create_pkey_strategy(self) -> PrimaryKeyStrategy:
        """Return the inserted key strategy for this dialect."""

    # ------------------------------------------------------------------
    # SQL fragments
    # ------------------------------------------------------------------

    def text_search_fragment(self, column: str, operator: str, placeholder: str) -> str:
        """Render a bound comparison of an already quoted column."""
        return default_fragment(column, operator, placeholder)

    def render_tables(self, kind: str, tables: Sequence[str]) -> List[str]:
        """Render the table list of a statement.

        INSERT statements cannot carry table aliases, so only the table name is
        kept for them.
        """
        if kind != StatementKind.INSERT.value:
            return list(tables)

        return [_AS_RE.sub(" ", table).split(" ")[0] for table in tables]

    def prepare_sql(self, db: "Database", query: "Query", sql: str) -> str:
        """Final rewrite of an assembled statement before execution."""
        if query.kind in (StatementKind.SELECT.value, StatementKind.COUNT.value):
            return self.limit_strategy.wrap(sql, query.limit_value, query.offset_value)

        if query.kind == StatementKind.INSERT.value:
            return self.pkey_strategy.prepare(self, db, query, sql)

        return sql

    def returning_column(self, db: "Database", query: "Query") -> Optional[str]:
        """Quoted column read back after an insert, if known."""
        pkey = query.get_pkey()
        return self.quoter.quote(pkey[0]) if pkey else None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_statement(self, sql: str, bindings: BindingList) -> TextClause:
        """Wrap ``sql`` in a text construct, typing the hinted placeholders."""
        statement = text(sql)

        typed = [
            bindparam(binding.name, type_=binding.type_hint)
            for binding in bindings
            if binding.type_hint is not None
            and re.search(rf":{re.escape(binding.name)}\b", sql)
        ]
        if typed:
            statement = statement.bindparams(*typed)

        return statement

    def execute(self, connection: Connection, query: "Query", sql: str) -> Result:
        """Execute a prepared statement for ``query`` on ``connection``."""
        statement = self.build_statement(sql, query.bindings)
        params = query.bindings.as_params()

        if query.kind == StatementKind.INSERT.value:
            return self.pkey_strategy.execute(self, connection, sql, statement, params, query)

        return self.result_class(connection.execute(statement, params))

    # ------------------------------------------------------------------
    # Connections and transactions
    # ------------------------------------------------------------------

    def url_query(self, settings: DatabaseSettings) -> Dict[str, str]:
        """URL query parameters built from the DSN options."""
        return settings.dsn_options()

    def build_url(self, settings: DatabaseSettings) -> URL:
        """Build the SQLAlchemy URL for ``settings``."""
        return URL.create(
            self.drivername,
            username=settings.user or None,
            password=settings.password_value(),
            host=settings.host or None,
            port=settings.port,
            database=settings.database or None,
            query=self.url_query(settings),
        )

    def connect(self, settings: DatabaseSettings) -> Tuple[Engine, Connection]:
        """Open a connection for ``settings``.

        Connections are not pooled; closing the connection closes the DB-API
        connection.

        Raises:
            GridSQLError: CONNECTION_FAILURE with the driver's message
        """
        try:
            engine = create_engine(
                self.build_url(settings),
                poolclass=NullPool,
                connect_args=dict(settings.driver_attributes),
            )
            connection = engine.connect()
            self.on_connect(connection)
        except Exception as exc:
            raise connection_failure(
                settings.database,
                getattr(exc, "orig", None) or exc,
                self.type.value,
            ) from exc

        logger.info(
            "Connected",
            extra={"db.system": self.type.value, "db.name": settings.database},
        )
        return engine, connection

    def on_connect(self, connection: Connection) -> None:
        """Session setup run once after connecting."""

    def begin(self, connection: Connection) -> None:
        # SQLAlchemy autobegins on first use; finish that before an explicit begin
        if connection.in_transaction():
            connection.commit()
        connection.begin()

    def commit(self, connection: Connection) -> None:
        connection.commit()

    def rollback(self, connection: Connection) -> None:
        connection.rollback()

    def quote_value(self, connection: Connection, value: Any) -> str:
        """Render ``value`` as a string literal of this dialect."""
        processor = String().literal_processor(dialect=connection.dialect)
        return processor(str(value))
