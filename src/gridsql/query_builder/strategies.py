"""Dialect strategies for paging and for reading back inserted keys.

Limit strategies decide how LIMIT/OFFSET reaches the SQL text. Most dialects
append a fragment to the statement (``AppendingLimitStrategy``); Oracle has to
wrap the whole SELECT in a ROWNUM bounded derived table
(``WrappingLimitStrategy``). The statement builder treats both the same way:
it asks for a fragment while assembling, and hands the finished SELECT to
``wrap`` before execution.

Primary key strategies decide how the key of an inserted row is obtained:
a RETURNING clause, an OUT bind variable, or a last-insert-id call.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.sql.elements import TextClause

from gridsql.constants.sql import ORACLE_PKEY_BIND
from gridsql.query_builder.result import Result

if TYPE_CHECKING:
    from gridsql.database import Database
    from gridsql.query_builder.base import Query
    from gridsql.query_builder.dialects.base import DialectAdapter


class LimitStrategy(ABC):
    """How a dialect applies limit and offset to a SELECT."""

    @abstractmethod
    def fragment(self, limit: Optional[int], offset: Optional[int]) -> str:
        """Text appended to the statement while it is assembled."""

    def wrap(self, sql: str, limit: Optional[int], offset: Optional[int]) -> str:
        """Final rewrite of a complete SELECT statement."""
        return sql


class AppendingLimitStrategy(LimitStrategy):
    """Limit and offset rendered as a trailing fragment."""


class LimitOffsetStrategy(AppendingLimitStrategy):
    """``LIMIT n OFFSET m`` (MySQL, Postgres, SQLite)."""

    def fragment(self, limit: Optional[int], offset: Optional[int]) -> str:
        out = ""
        limit = int(limit or 0)
        offset = int(offset or 0)

        if limit:
            out += f" LIMIT {limit}"
        if offset:
            out += f" OFFSET {offset}"

        return out


class OffsetFetchStrategy(AppendingLimitStrategy):
    """``OFFSET m ROWS FETCH NEXT n ROWS ONLY`` (SQL Server 2012+, DB2, Firebird).

    A limit without an offset still needs ``OFFSET 0 ROWS`` in front of the
    FETCH clause.

    Args:
        fetch_keyword: ``NEXT`` or ``FIRST``; the two are synonyms in the
            standard but some engines only accept one of them.
    """

    def __init__(self, fetch_keyword: str = "NEXT"):
        self.fetch_keyword = fetch_keyword

    def fragment(self, limit: Optional[int], offset: Optional[int]) -> str:
        out = ""
        limit = int(limit or 0)
        offset = int(offset or 0)

        if offset:
            out += f" OFFSET {offset} ROWS"

        if limit:
            if not offset:
                out += " OFFSET 0 ROWS"
            out += f" FETCH {self.fetch_keyword} {limit} ROWS ONLY"

        return out


class WrappingLimitStrategy(LimitStrategy):
    """ROWNUM window around the complete SELECT (Oracle).

    Nothing is appended while the statement is assembled; ``wrap`` rewrites
    the finished statement so that only rows ``offset + 1`` to
    ``offset + limit`` are returned.
    """

    def fragment(self, limit: Optional[int], offset: Optional[int]) -> str:
        return " "

    def wrap(self, sql: str, limit: Optional[int], offset: Optional[int]) -> str:
        if limit is None and offset is None:
            return sql

        offset = int(offset or 0)
        upper = f" where rownum <= {offset + int(limit)}" if limit else ""

        return (
            "select * from (select rownum rnum, a.* "
            f"from ({sql}) a{upper}) "
            f"where rnum > {offset}"
        )


class PrimaryKeyStrategy(ABC):
    """How a dialect returns the key of a row it just inserted."""

    def prepare(self, adapter: "DialectAdapter", db: "Database", query: "Query", sql: str) -> str:
        """Rewrite the INSERT statement before execution."""
        return sql

    @abstractmethod
    def execute(
        self,
        adapter: "DialectAdapter",
        connection: Connection,
        sql: str,
        statement: TextClause,
        params: Dict[str, Any],
        query: "Query",
    ) -> Result:
        """Run the INSERT and wrap it in a result carrying the new key."""


class LastInsertIdStrategy(PrimaryKeyStrategy):
    """Read the key after the insert.

    Args:
        identity_sql: Statement returning the last generated identity on the
            connection. When omitted the driver's ``lastrowid`` is used.
    """

    def __init__(self, identity_sql: Optional[str] = None):
        self.identity_sql = identity_sql

    def execute(self, adapter, connection, sql, statement, params, query) -> Result:
        result = connection.execute(statement, params)

        if self.identity_sql:
            insert_id = connection.execute(text(self.identity_sql)).scalar()
        else:
            insert_id = result.lastrowid

        return adapter.result_class(result, insert_id=insert_id)


class ReturningClauseStrategy(PrimaryKeyStrategy):
    """Append a RETURNING clause and read the key from the returned row.

    Args:
        template: Clause appended to the INSERT; ``{column}`` is replaced by the
            quoted key column.
    """

    def __init__(self, template: str):
        self.template = template

    def prepare(self, adapter, db, query, sql) -> str:
        column = adapter.returning_column(db, query)
        if column is None:
            return sql
        return sql + self.template.format(column=column)

    def execute(self, adapter, connection, sql, statement, params, query) -> Result:
        result = connection.execute(statement, params)
        insert_id = None

        if result.returns_rows:
            row = result.first()
            insert_id = row[0] if row is not None else None
            rowcount = 1 if row is not None else 0
            return adapter.result_class(None, insert_id=insert_id, rowcount=rowcount)

        return adapter.result_class(result, insert_id=insert_id)


class OutParameterStrategy(PrimaryKeyStrategy):
    """``RETURNING <pk> INTO :bind`` with an OUT variable (Oracle).

    The OUT variable has to be created on the driver's own cursor, so the
    statement runs on the raw DB-API connection that backs the SQLAlchemy
    connection, inside the same transaction.
    """

    def __init__(self, bind_name: str = ORACLE_PKEY_BIND, out_type: type = str):
        self.bind_name = bind_name
        self.out_type = out_type

    def prepare(self, adapter, db, query, sql) -> str:
        if not query.get_pkey():
            return sql
        column = adapter.quoter.quote(query.get_pkey()[0])
        return f"{sql} RETURNING {column} INTO :{self.bind_name}"

    def execute(self, adapter, connection, sql, statement, params, query) -> Result:
        if not query.get_pkey():
            return adapter.result_class(connection.execute(statement, params))

        if not connection.in_transaction():
            connection.begin()

        cursor = connection.connection.dbapi_connection.cursor()
        try:
            out_var = cursor.var(self.out_type)
            cursor.execute(sql, {**params, self.bind_name: out_var})
            value = out_var.getvalue()
            rowcount = cursor.rowcount
        finally:
            cursor.close()

        # DML returning yields one value per affected row
        if isinstance(value, list):
            value = value[0] if value else None

        return adapter.result_class(None, insert_id=value, rowcount=rowcount)
