"""Oracle adapter (python-oracledb driver)."""

from typing import Dict

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import OutParameterStrategy, WrappingLimitStrategy
from gridsql.settings.database import DatabaseSettings

_SESSION_SETUP = (
    "ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'",
    "ALTER SESSION SET NLS_TIMESTAMP_FORMAT = 'YYYY-MM-DD HH24:MI:SS'",
)


class OracleAdapter(DialectAdapter):
    """Oracle 11g style paging and ``RETURNING ... INTO`` keys.

    Paging wraps the SELECT in a ROWNUM window, column aliases are written
    without ``AS``, and the database name in the settings is used as the
    service name. Dates and timestamps are returned in ISO format.
    """

    type = DialectType.ORACLE
    drivername = "oracle+oracledb"
    identifier_quote = ('"', '"')
    field_quote = '"'
    supports_as_alias = False

    def _create_limit_strategy(self):
        return WrappingLimitStrategy()

    def _create_pkey_strategy(self):
        return OutParameterStrategy()

    def url_query(self, settings: DatabaseSettings) -> Dict[str, str]:
        query = super().url_query(settings)
        if settings.database:
            query.setdefault("service_name", settings.database)
        return query

    def build_url(self, settings: DatabaseSettings) -> URL:
        return URL.create(
            self.drivername,
            username=settings.user or None,
            password=settings.password_value(),
            host=settings.host or None,
            port=settings.port,
            query=self.url_query(settings),
        )

    def on_connect(self, connection: Connection) -> None:
        for statement in _SESSION_SETUP:
            connection.execute(text(statement))
        connection.commit()

    def begin(self, connection: Connection) -> None:
        # Oracle is always in a transaction; nothing to start
        return None
