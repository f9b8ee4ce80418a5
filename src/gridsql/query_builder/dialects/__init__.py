"""Dialect adapters, one per supported database engine."""

from gridsql.query_builder.dialects.base import DialectAdapter
from gridsql.query_builder.dialects.db2 import DB2Adapter
from gridsql.query_builder.dialects.firebird import FirebirdAdapter
from gridsql.query_builder.dialects.mysql import MySQLAdapter
from gridsql.query_builder.dialects.oracle import OracleAdapter
from gridsql.query_builder.dialects.postgres import PostgresAdapter
from gridsql.query_builder.dialects.sqlite import SQLiteAdapter
from gridsql.query_builder.dialects.sqlserver import SQLServerAdapter

__all__ = [
    "DialectAdapter",
    "DB2Adapter",
    "FirebirdAdapter",
    "MySQLAdapter",
    "OracleAdapter",
    "PostgresAdapter",
    "SQLiteAdapter",
    "SQLServerAdapter",
]
