"""SQLite adapter (standard library ``sqlite3`` driver)."""

from sqlalchemy.engine import URL

from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import LastInsertIdStrategy, LimitOffsetStrategy
from gridsql.settings.database import DatabaseSettings


class SQLiteAdapter(DialectAdapter):
    """File or in-memory SQLite database.

    ``database`` in the settings is the file path; without one an in-memory
    database is opened.
    """

    type = DialectType.SQLITE
    drivername = "sqlite"
    identifier_quote = ('"', '"')
    field_quote = "'"

    def _create_limit_strategy(self):
        return LimitOffsetStrategy()

    def _create_pkey_strategy(self):
        return LastInsertIdStrategy()

    def build_url(self, settings: DatabaseSettings) -> URL:
        return URL.create(
            self.drivername,
            database=settings.database or ":memory:",
            query=self.url_query(settings),
        )
