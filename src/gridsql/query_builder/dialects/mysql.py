"""MySQL / MariaDB adapter (PyMySQL driver)."""

from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import LastInsertIdStrategy, LimitOffsetStrategy


class MySQLAdapter(DialectAdapter):
    """Backtick quoted identifiers, ``LIMIT``/``OFFSET`` paging, ``lastrowid`` keys."""

    type = DialectType.MYSQL
    drivername = "mysql+pymysql"
    identifier_quote = ("`", "`")
    field_quote = "'"

    def _create_limit_strategy(self):
        return LimitOffsetStrategy()

    def _create_pkey_strategy(self):
        return LastInsertIdStrategy()
