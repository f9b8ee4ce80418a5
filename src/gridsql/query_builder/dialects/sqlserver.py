"""Microsoft SQL Server adapter (pyodbc driver, SQL Server 2012 or later)."""

import re
from typing import Dict, Optional

from gridsql.constants.dialect import DialectType
from gridsql.logging import get_logger
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import LastInsertIdStrategy, OffsetFetchStrategy
from gridsql.settings.database import DatabaseSettings

logger = get_logger(__name__)

_ODBC_DRIVER_RE = re.compile(r"^ODBC Driver (\d+) for SQL Server$")


def find_odbc_driver() -> Optional[str]:
    """Newest installed "ODBC Driver NN for SQL Server", if any."""
    import pyodbc

    candidates = []
    for name in pyodbc.drivers():
        match = _ODBC_DRIVER_RE.match(name)
        if match:
            candidates.append((int(match.group(1)), name))

    return max(candidates)[1] if candidates else None


class SQLServerAdapter(DialectAdapter):
    """Square bracket identifiers, ``OFFSET``/``FETCH NEXT`` paging, ``@@IDENTITY`` keys."""

    type = DialectType.SQLSERVER
    drivername = "mssql+pyodbc"
    identifier_quote = ("[", "]")
    field_quote = "'"

    def _create_limit_strategy(self):
        return OffsetFetchStrategy("NEXT")

    def _create_pkey_strategy(self):
        return LastInsertIdStrategy("SELECT @@IDENTITY")

    def url_query(self, settings: DatabaseSettings) -> Dict[str, str]:
        query = super().url_query(settings)

        if not any(key.lower() == "driver" for key in query):
            driver = find_odbc_driver()
            if driver:
                query["driver"] = driver
            else:
                logger.warning("No ODBC driver for SQL Server found")

        return query
