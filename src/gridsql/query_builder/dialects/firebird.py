"""Firebird adapter (sqlalchemy-firebird with the fdb driver)."""

from gridsql.constants.dialect import DialectType
from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.strategies import OffsetFetchStrategy, ReturningClauseStrategy


class FirebirdAdapter(DialectAdapter):
    """Firebird 3+: ``OFFSET``/``FETCH`` paging and ``RETURNING "<pk>"`` keys."""

    type = DialectType.FIREBIRD
    drivername = "firebird+fdb"
    identifier_quote = ('"', '"')
    field_quote = '"'
    supports_as_alias = False

    def _create_limit_strategy(self):
        return OffsetFetchStrategy("NEXT")

    def _create_pkey_strategy(self):
        return ReturningClauseStrategy(" RETURNING {column}")
