"""PostgreSQL adapter (psycopg 3 driver)."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import text

from gridsql.constants.dialect import DialectType
from gridsql.constants.sql import RETURNING_PKEY_ALIAS
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import LimitOffsetStrategy, ReturningClauseStrategy

if TYPE_CHECKING:
    from gridsql.database import Database
    from gridsql.query_builder.base import Query

_PRIMARY_KEY_LOOKUP = """
    SELECT a.attname
    FROM   pg_index i
    JOIN   pg_attribute a ON a.attrelid = i.indrelid
                         AND a.attnum = ANY(i.indkey)
    WHERE  i.indrelid = (:table_name)::regclass
    AND    i.indisprimary
"""


class PostgresAdapter(DialectAdapter):
    """Inserted keys come back through ``RETURNING <pk> as dt_pkey``.

    When the query carries no primary key, the key column is looked up in
    ``pg_index`` for the insert's table.
    """

    type = DialectType.POSTGRES
    drivername = "postgresql+psycopg"
    identifier_quote = ('"', '"')
    field_quote = '"'

    def _create_limit_strategy(self):
        return LimitOffsetStrategy()

    def _create_pkey_strategy(self):
        return ReturningClauseStrategy(" RETURNING {column} as " + RETURNING_PKEY_ALIAS)

    def text_search_fragment(self, column: str, operator: str, placeholder: str) -> str:
        # Cast so that LIKE also searches numbers and dates, case insensitively
        if operator == "like":
            return f"{column}::text ilike :{placeholder}"
        return super().text_search_fragment(column, operator, placeholder)

    def returning_column(self, db: "Database", query: "Query") -> Optional[str]:
        if query.get_pkey():
            return super().returning_column(db, query)

        if not query.tables:
            return None

        table = query.tables[0].split(" ")[0]
        row = db.connection.execute(text(_PRIMARY_KEY_LOOKUP), {"table_name": table}).first()

        return self.quoter.quote(row[0]) if row is not None else None
