"""IBM DB2 adapter (ibm_db_sa driver)."""

from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.result import CountingResult
from gridsql.query_builder.strategies import LastInsertIdStrategy, OffsetFetchStrategy


class DB2Adapter(DialectAdapter):
    """Unquoted identifiers and ``FETCH FIRST`` paging.

    The driver reports no row count for SELECT statements, so results count
    their rows by reading them.
    """

    type = DialectType.DB2
    drivername = "db2+ibm_db"
    identifier_quote = (None, None)
    field_quote = '"'
    result_class = CountingResult

    def _create_limit_strategy(self):
        return OffsetFetchStrategy("FIRST")

    def _create_pkey_strategy(self):
        return LastInsertIdStrategy("SELECT IDENTITY_VAL_LOCAL() FROM SYSIBM.SYSDUMMY1")
