"""gridsql: a dialect-neutral SQL builder with editable table support.

The package has two layers:

* ``Database`` and ``Query`` compose and run SELECT, INSERT, UPDATE, DELETE
  and COUNT statements with bound parameters on MySQL, PostgreSQL, SQLite,
  SQL Server, Oracle, DB2 and Firebird, hiding each dialect's quoting, limit
  syntax and way of returning inserted keys.
* ``EditorHost`` with ``Field``, ``Join`` / ``Mjoin`` and the option
  providers reads rows in the shape a data grid client expects and turns
  submitted edits back into statements.

Example:
    >>> from gridsql import Database, EditorHost, Field
    >>> db = Database({"type": "sqlite", "database": "app.db"})
    >>> host = EditorHost(db, "users", fields=[Field("first_name"), Field("last_name")])
    >>> host.read()
"""

from gridsql.__version__ import __version__
from gridsql.common.exceptions import ErrorCode, GridSQLError
from gridsql.constants.dialect import DialectType
from gridsql.database import Database
from gridsql.editor import (
    EditorHost,
    Field,
    Join,
    Mjoin,
    Options,
    SearchBuilderOptions,
    SearchPaneOptions,
)
from gridsql.logging import get_logger, setup_logging
from gridsql.query_builder import Query
from gridsql.settings import get_settings

__all__ = [
    "Database",
    "Query",
    "EditorHost",
    "Field",
    "Join",
    "Mjoin",
    "Options",
    "SearchPaneOptions",
    "SearchBuilderOptions",
    "DialectType",
    "GridSQLError",
    "ErrorCode",
    "get_settings",
    "setup_logging",
    "get_logger",
    "__version__",
]
