"""Statement builder.

A ``Query`` accumulates the parts of one SQL statement (tables, fields, SET
values, conditions, joins, ordering and paging), renders them in the syntax of
the database's dialect and executes the result with named placeholders. A
query is single use: once ``exec`` has run, the instance is spent.

Example:
    >>> result = (
    ...     db.query("select", "users")
    ...     .get("id", "first_name", "last_name")
    ...     .where("active", 1)
    ...     .or_where(lambda q: q.where("role", "admin").where("site", 3))
    ...     .order("last_name asc, first_name")
    ...     .limit(10)
    ...     .exec()
    ... )
    >>> result.fetch_all()
"""

import re
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from gridsql.common.exceptions import unsupported_command_error, validation_error
from gridsql.constants.sql import JoinType, StatementKind
from gridsql.logging import get_logger
from gridsql.query_builder.bindings import BindingList, sanitize_binding_name
from gridsql.query_builder.conditions import ConditionTree
from gridsql.query_builder.result import Result
from gridsql.types.query import LeftJoin
from gridsql.utils.decorators import traced

if TYPE_CHECKING:
    from gridsql.database import Database

logger = get_logger(__name__)

_JOIN_TYPES = {join_type.value for join_type in JoinType}
_JOIN_CONDITION_RE = re.compile(r"([\w.]+)([\W\s]+)(.+)")
_ORDER_SPLIT_RE = re.compile(r",(?![^(]*\))")
_FIELD_ALIAS_RE = re.compile(r" as (?![^(]*\))", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"[\t ]+")

WhereKey = Union[str, Mapping[str, Any], Callable[["Query"], Any], None]


def _exec_span_attributes(query: "Query", sql: Optional[str] = None) -> Dict[str, Any]:
    return {
        "db.system": query.dialect_type,
        "db.operation": query.kind.upper(),
        "db.statement.kind": query.kind,
    }


class Query:
    """Builder for one SELECT, INSERT, UPDATE, DELETE, COUNT or raw statement.

    Queries are normally created through ``Database.query``; the composition
    methods all return the query so calls can be chained.

    Args:
        db: Database the statement will run on; its dialect adapter decides
            quoting, paging and primary key handling
        kind: Statement kind (``select``, ``insert``, ``update``, ``delete``,
            ``count`` or ``raw``)
        table: Optional table(s) to operate on
    """

    def __init__(
        self,
        db: "Database",
        kind: Union[StatementKind, str],
        table: Union[str, Iterable[str], None] = None,
    ):
        self._db = db
        self._adapter = db.dialect
        self._quoter = self._adapter.quoter
        self._kind = kind.value if isinstance(kind, StatementKind) else str(kind).lower()

        self._bindings = BindingList()
        self._where = ConditionTree(
            self._quoter,
            self._bindings,
            fragment_renderer=self._adapter.text_search_fragment,
        )
        self._tables: List[str] = []
        self._fields: List[str] = []
        self._joins: List[str] = []
        self._order: List[str] = []
        self._no_bind: Dict[str, Any] = {}
        self._group_by: Optional[str] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._distinct = False
        self._pkey: Optional[List[str]] = None
        self._sql: Optional[str] = None
        self._spent = False

        self.table(table)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def dialect_type(self) -> str:
        return self._adapter.type.value

    @property
    def bindings(self) -> BindingList:
        return self._bindings

    @property
    def sql(self) -> Optional[str]:
        """SQL text of the last execution, after dialect rewriting."""
        return self._sql

    @property
    def tables(self) -> Tuple[str, ...]:
        """Quoted tables, including any alias."""
        return tuple(self._tables)

    @property
    def conditions(self) -> ConditionTree:
        return self._where

    @property
    def limit_value(self) -> Optional[int]:
        return self._limit

    @property
    def offset_value(self) -> Optional[int]:
        return self._offset

    def get_pkey(self) -> Optional[List[str]]:
        """Primary key columns registered with ``pkey``."""
        return self._pkey

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def bind(self, name: str, value: Any, type_hint: Optional[Any] = None) -> "Query":
        """Bind a value to a named placeholder.

        Args:
            name: Placeholder name, with or without the leading ``:``
            value: Value to bind
            type_hint: Optional SQLAlchemy type used for the bind parameter
        """
        self._bindings.add(name, value, type_hint)
        return self

    def distinct(self, flag: bool = True) -> "Query":
        """Select distinct rows. Has no effect on other statement kinds."""
        self._distinct = bool(flag)
        return self

    def get(self, *fields: Any) -> "Query":
        """Add fields to select (or to count).

        Each argument may be a field name, a list of names or a comma separated
        string. Strings containing a function call are never split.
        """
        for field in fields:
            if field is None:
                continue

            if isinstance(field, (list, tuple)):
                self.get(*field)
            elif "," in field and "(" not in field:
                self.get(*field.split(","))
            else:
                self._fields.append(field.strip())

        return self

    def group_by(self, column: Optional[str]) -> "Query":
        self._group_by = column
        return self

    def join(self, table: str, condition: str, join_type: str = "", bind: bool = True) -> "Query":
        """Add a JOIN.

        Args:
            table: Table to join, optionally aliased
            condition: Join condition, e.g. ``users.site = sites.id``
            join_type: ``LEFT``, ``RIGHT``, ``INNER``, ``OUTER``, ``LEFT OUTER`` or
                ``RIGHT OUTER``. Anything else gives a plain ``JOIN``.
            bind: Quote the identifiers on both sides of the condition. Pass
                ``False`` to use ``condition`` verbatim.
        """
        if join_type:
            join_type = join_type.strip().upper()
            if join_type not in _JOIN_TYPES:
                join_type = ""

        if bind:
            match = _JOIN_CONDITION_RE.search(condition)
            if match:
                condition = (
                    self._quoter.quote(match.group(1))
                    + match.group(2)
                    + self._quoter.quote(match.group(3))
                )

        self._joins.append(f"{join_type} JOIN {self._quoter.quote(table)} ON {condition} ")
        return self

    def left_join(
        self,
        joins: Union[LeftJoin, Mapping[str, Any], Iterable[Union[LeftJoin, Mapping[str, Any]]], None],
    ) -> "Query":
        """Add one or more LEFT JOINs.

        Each join is a ``LeftJoin`` or a mapping with ``table``, ``field1``,
        ``operator`` and ``field2`` keys. Without an operator and second
        field, ``field1`` is taken as the complete, unquoted join condition.
        """
        if joins is None:
            return self

        if isinstance(joins, (LeftJoin, Mapping)):
            joins = [joins]

        for join in joins:
            left = LeftJoin.coerce(join)

            if left.is_raw:
                self.join(left.table, left.field1, JoinType.LEFT.value, False)
            else:
                self.join(
                    left.table,
                    f"{left.field1} {left.operator} {left.field2}",
                    JoinType.LEFT.value,
                )

        return self

    def limit(self, count: Optional[int]) -> "Query":
        self._limit = count
        return self

    def offset(self, count: Optional[int]) -> "Query":
        self._offset = count
        return self

    def order(self, order: Union[str, Iterable[str], None]) -> "Query":
        """Add ORDER BY terms.

        ``order`` is a list of terms or a comma separated string such as
        ``"name asc, FIELD(id, 3, 1) desc"``. Commas inside parentheses do not
        split a term.
        """
        if order is None:
            return self

        terms = _ORDER_SPLIT_RE.split(order) if isinstance(order, str) else list(order)

        for term in terms:
            term = _WHITESPACE_RE.sub(" ", term).strip()

            if " " in term:
                identifier, direction = term.split(" ", 1)
                self._order.append(f"{self._quoter.quote(identifier)} {direction}")
            else:
                self._order.append(self._quoter.quote(term))

        return self

    def pkey(self, pkey: Union[str, Iterable[str], None]) -> "Query":
        """Register the table's primary key column(s).

        Dialects that return the inserted key through a RETURNING clause or an
        OUT parameter use the first column.
        """
        if pkey is None:
            return self

        self._pkey = [pkey] if isinstance(pkey, str) else list(pkey)
        return self

    def set(
        self,
        key: Union[str, Mapping[str, Any], None],
        value: Any = None,
        bind: bool = True,
    ) -> "Query":
        """Set column values for INSERT and UPDATE.

        Args:
            key: Column name, or a mapping of column names to values
            value: Value when ``key`` is a single column
            bind: Bind the value. With ``False`` the value is written into the
                statement as a literal SQL expression (``NOW()``, ``count + 1``).
        """
        if key is None:
            return self

        items = key.items() if isinstance(key, Mapping) else [(key, value)]

        for column, column_value in items:
            self._fields.append(column)

            if bind:
                self._bindings.add(column, column_value)
            else:
                self._no_bind[column] = column_value

        return self

    def table(self, table: Union[str, Iterable[str], None]) -> "Query":
        """Add table(s) as a name, comma separated names or a list of names."""
        if table is None:
            return self

        if isinstance(table, str):
            for name in table.split(","):
                self._tables.append(self._quoter.quote(name.strip()))
        else:
            for name in table:
                self.table(name)

        return self

    def where(
        self,
        key: WhereKey,
        value: Any = None,
        op: str = "=",
        bind: bool = True,
    ) -> "Query":
        """Add AND conditions.

        ``key`` may be:

        * a column name, compared with ``value`` using ``op``. A list value
          adds one AND condition per element; ``None`` tests for NULL.
        * a mapping of column names to values, one condition per item.
        * a callable taking the query; the conditions it adds are wrapped in
          parentheses.

        Args:
            key: Column name, mapping or callable
            value: Value to compare with
            op: Comparison operator
            bind: Bind the value. With ``False`` the value is treated as an
                identifier, for column to column comparisons.
        """
        return self._add_where(key, value, op, bind, "AND")

    def and_where(self, key: WhereKey, value: Any = None, op: str = "=", bind: bool = True) -> "Query":
        """Same as ``where``."""
        return self.where(key, value, op, bind)

    def or_where(self, key: WhereKey, value: Any = None, op: str = "=", bind: bool = True) -> "Query":
        """Add OR conditions, with the same shapes as ``where``.

        A list value gives one OR joined condition per element, so
        ``or_where("id", [1, 2])`` renders ``id = :a OR id = :b``.
        """
        return self._add_where(key, value, op, bind, "OR")

    def where_group(self, group: Union[bool, Callable[["Query"], Any]], op: str = "AND") -> "Query":
        """Parenthesise conditions.

        With a callable, open a group joined with ``op``, call it with the
        query and close the group. With a bool, open (``True``) or close
        (``False``) a group explicitly; the caller keeps them balanced.
        """
        if callable(group):
            self._where.add_group(True, op)
            group(self)
            self._where.add_group(False, op)
        else:
            self._where.add_group(bool(group), op)

        return self

    def where_in(self, field: str, values: Iterable[Any], op: str = "AND") -> "Query":
        """Add ``field IN (...)``. An empty ``values`` adds nothing."""
        self._where.add_in_condition(field, values, op)
        return self

    def _add_where(self, key: WhereKey, value: Any, op: str, bind: bool, join_operator: str) -> "Query":
        if key is None:
            return self

        if callable(key):
            self._where.add_group(True, join_operator)
            key(self)
            self._where.add_group(False, "OR")
        elif isinstance(key, Mapping):
            for column, column_value in key.items():
                self._where.add_condition(column, column_value, op, join_operator, bind)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._add_where(key, item, op, bind, join_operator)
        else:
            self._where.add_condition(key, value, op, join_operator, bind)

        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @traced(span_name="gridsql.query.exec", attribute_getter=_exec_span_attributes)
    def exec(self, sql: Optional[str] = None) -> Result:
        """Render and execute the statement.

        Args:
            sql: Statement text, for ``raw`` queries only

        Returns:
            Result of the statement

        Raises:
            GridSQLError: UNSUPPORTED_COMMAND for an unknown statement kind,
                VALIDATION_ERROR when the query was already executed, and
                STATEMENT_EXECUTION_FAILURE when the database rejects it.
        """
        if self._spent:
            raise validation_error(
                "Query has already been executed. Create a new query for each statement.",
                field="kind",
                value=self._kind,
            )

        builders = {
            StatementKind.SELECT.value: self._select,
            StatementKind.INSERT.value: self._insert,
            StatementKind.UPDATE.value: self._update,
            StatementKind.DELETE.value: self._delete,
            StatementKind.COUNT.value: self._count,
        }

        if self._kind == StatementKind.RAW.value:
            if not sql:
                raise validation_error("Raw queries need the SQL to execute", field="sql")
            statement = sql
        elif self._kind in builders:
            statement = builders[self._kind]()
        else:
            raise unsupported_command_error(self._kind)

        self._spent = True
        return self._run(statement)

    def _run(self, sql: str) -> Result:
        sql = self._adapter.prepare_sql(self._db, self, sql)
        self._sql = sql
        self._bindings.order_by(sql)

        logger.debug("Prepared %s statement", self._kind, extra={"sql": sql})
        self._db.debug_info(sql, self._bindings.for_debug())

        return self._db.execute(self, sql)

    # ------------------------------------------------------------------
    # Statement assembly
    # ------------------------------------------------------------------

    def _select(self) -> str:
        return (
            "SELECT "
            + ("DISTINCT " if self._distinct else "")
            + self._build_fields(add_alias=True)
            + "FROM "
            + self._build_tables()
            + self._build_joins()
            + self._where.render()
            + self._build_group_by()
            + self._build_order()
            + self._build_limit()
        )

    def _count(self) -> str:
        alias = " as " if self._adapter.supports_as_alias else " "
        return (
            "SELECT COUNT("
            + self._build_fields()
            + ")"
            + alias
            + self._quoter.quote("cnt")
            + " FROM "
            + self._build_tables()
            + self._build_joins()
            + self._where.render()
            + self._build_limit()
        )

    def _insert(self) -> str:
        return (
            "INSERT INTO "
            + self._build_tables()
            + " ("
            + self._build_fields()
            + ") VALUES ("
            + self._build_values()
            + ")"
        )

    def _update(self) -> str:
        return (
            "UPDATE "
            + self._build_tables()
            + "SET "
            + self._build_set()
            + self._where.render()
        )

    def _delete(self) -> str:
        return "DELETE FROM " + self._build_tables() + self._where.render()

    def _build_fields(self, add_alias: bool = False) -> str:
        alias_keyword = " as " if self._adapter.supports_as_alias else " "
        quote = self._adapter.field_quote
        rendered = []

        for field in self._fields:
            if add_alias and field != "*" and "(" not in field:
                split = _FIELD_ALIAS_RE.split(field, maxsplit=1)

                if len(split) > 1:
                    rendered.append(
                        self._quoter.quote(split[0]) + alias_keyword + quote + split[1] + quote
                    )
                else:
                    rendered.append(
                        self._quoter.quote(field) + alias_keyword + quote + self._escape_field(field) + quote
                    )
            elif add_alias and "(" in field and " as " not in field:
                rendered.append(
                    self._quoter.quote(field) + alias_keyword + quote + self._escape_field(field) + quote
                )
            else:
                rendered.append(self._quoter.quote(field))

        return " " + ", ".join(rendered) + " "

    def _build_group_by(self) -> str:
        if self._group_by:
            return " GROUP BY " + self._quoter.quote(self._group_by)
        return ""

    def _build_joins(self) -> str:
        return " ".join(self._joins)

    def _build_limit(self) -> str:
        return self._adapter.limit_strategy.fragment(self._limit, self._offset)

    def _build_order(self) -> str:
        if self._order:
            return " ORDER BY " + ", ".join(self._order) + " "
        return ""

    def _build_set(self) -> str:
        assignments = []

        for field in self._fields:
            if field in self._no_bind:
                assignments.append(f"{self._quoter.quote(field)} = {self._no_bind[field]}")
            else:
                assignments.append(f"{self._quoter.quote(field)} = :{sanitize_binding_name(field)}")

        return " " + ", ".join(assignments) + " "

    def _build_tables(self) -> str:
        return " " + ", ".join(self._adapter.render_tables(self._kind, self._tables)) + " "

    def _build_values(self) -> str:
        values = []

        for field in self._fields:
            if field in self._no_bind:
                values.append(f" {self._no_bind[field]}")
            else:
                values.append(f" :{sanitize_binding_name(field)}")

        return " " + ", ".join(values) + " "

    def _escape_field(self, field: str) -> str:
        quote = self._adapter.field_quote
        return field.replace(quote, "\\" + quote)
