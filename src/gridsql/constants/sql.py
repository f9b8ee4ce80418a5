"""SQL statement and join constants.

These enums are shared by the query builder, the dialect adapters and the
editor layer. They carry no behaviour and import nothing from the rest of
the package, so any module can use them without creating cycles.
"""

from enum import Enum


class StatementKind(str, Enum):
    """Kinds of statement a ``Query`` can render and execute."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    COUNT = "count"
    RAW = "raw"


class JoinType(str, Enum):
    """Join qualifiers accepted by ``Query.join``.

    Anything outside this set collapses to a plain ``JOIN``.
    """

    LEFT = "LEFT"
    RIGHT = "RIGHT"
    INNER = "INNER"
    OUTER = "OUTER"
    LEFT_OUTER = "LEFT OUTER"
    RIGHT_OUTER = "RIGHT OUTER"


class JoinCardinality(str, Enum):
    """How many child rows a row join yields per parent row."""

    OBJECT = "object"
    ARRAY = "array"


class SetMode(str, Enum):
    """When a field is written back to the database."""

    NONE = "none"
    BOTH = "both"
    CREATE = "create"
    EDIT = "edit"


# Alias given to the synthetic parent key column in row join lookups
JOIN_PKEY_ALIAS = "dteditor_pkey"

# Alias used by the RETURNING based primary key strategies
RETURNING_PKEY_ALIAS = "dt_pkey"

# Bind variable used for Oracle's RETURNING ... INTO
ORACLE_PKEY_BIND = "editor_pkey_value"

# Above this many parent rows the join lookup skips the WHERE IN restriction
DEFAULT_JOIN_BATCH_THRESHOLD = 1000
