"""Statement building and dialect adaptation.

Architecture:
    - quoting.py: identifier quoting per dialect
    - bindings.py: placeholder naming and binding lists
    - conditions.py: WHERE clause accumulation and rendering
    - base.py: the ``Query`` statement builder
    - strategies.py: paging and inserted key strategies
    - dialects/: one adapter per database engine
    - result.py: result cursors
    - factory.py: dialect adapter factory

Statements are rendered here, never by SQLAlchemy's compiler, and executed
through ``sqlalchemy.text`` with named placeholders.
"""

from gridsql.query_builder.base import Query
from gridsql.query_builder.bindings import Binding, BindingList, sanitize_binding_name
from gridsql.query_builder.conditions import ConditionTree
from gridsql.query_builder.dialects import DialectAdapter
from gridsql.query_builder.factory import DialectFactory
from gridsql.query_builder.quoting import IdentifierQuoter
from gridsql.query_builder.result import CountingResult, Result
from gridsql.query_builder.strategies import (
    AppendingLimitStrategy,
    LastInsertIdStrategy,
    LimitOffsetStrategy,
    LimitStrategy,
    OffsetFetchStrategy,
    OutParameterStrategy,
    PrimaryKeyStrategy,
    ReturningClauseStrategy,
    WrappingLimitStrategy,
)

__all__ = [
    "Query",
    "Binding",
    "BindingList",
    "sanitize_binding_name",
    "ConditionTree",
    "DialectAdapter",
    "DialectFactory",
    "IdentifierQuoter",
    "Result",
    "CountingResult",
    "LimitStrategy",
    "AppendingLimitStrategy",
    "LimitOffsetStrategy",
    "OffsetFetchStrategy",
    "WrappingLimitStrategy",
    "PrimaryKeyStrategy",
    "LastInsertIdStrategy",
    "ReturningClauseStrategy",
    "OutParameterStrategy",
]
