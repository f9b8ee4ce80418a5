"""Constants shared across gridsql.

Everything here is plain data (enums and module level constants) with no
imports from other gridsql modules.
"""

from gridsql.constants.dialect import DialectType
from gridsql.constants.sql import (
    DEFAULT_JOIN_BATCH_THRESHOLD,
    JOIN_PKEY_ALIAS,
    ORACLE_PKEY_BIND,
    RETURNING_PKEY_ALIAS,
    JoinCardinality,
    JoinType,
    SetMode,
    StatementKind,
)

__all__ = [
    "DialectType",
    "StatementKind",
    "JoinType",
    "JoinCardinality",
    "SetMode",
    "JOIN_PKEY_ALIAS",
    "RETURNING_PKEY_ALIAS",
    "ORACLE_PKEY_BIND",
    "DEFAULT_JOIN_BATCH_THRESHOLD",
]
