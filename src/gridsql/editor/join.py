"""Row joins.

A row join attaches data from a child table to every row an editor host
reads, either as one nested object per row (``Join``, one-to-one) or as a
list of nested objects (``Mjoin``, one-to-many, optionally through a link
table). Reading costs one extra query per join, whatever the number of host
rows. The join also writes the nested data back on create and edit, and
removes child rows before the host rows they depend on.

Example:
    >>> permissions = (
    ...     Mjoin("permission")
    ...     .link("users.id", "user_permission.user_id")
    ...     .link("permission.id", "user_permission.permission_id")
    ...     .order("permission.name asc")
    ...     .fields(Field("id"), Field("name"))
    ... )
    >>> host = EditorHost(db, "users", fields=[Field("first_name")], joins=[permissions])
    >>> host.read()[0]["permission"]
    [{'id': 3, 'name': 'Accounts'}, {'id': 1, 'name': 'Printer'}]
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from gridsql.common.exceptions import validation_error
from gridsql.constants.sql import JOIN_PKEY_ALIAS, JoinCardinality, StatementKind
from gridsql.editor.field import Field
from gridsql.types.query import LeftJoin
from gridsql.utils.props import prop_exists, read_prop

if TYPE_CHECKING:
    from gridsql.database import Database
    from gridsql.editor.host import EditorHost
    from gridsql.query_builder.base import Query

JoinValidator = Callable[["EditorHost", str, Any], Union[bool, str, None]]


class _JoinColumns(NamedTuple):
    """Resolved join columns. Pairs of (own column, link column) with a link table."""

    parent: Union[str, List[str], None]
    child: Union[str, List[str], None]
    link_table: Optional[str]


class Join:
    """Nested data from a child table, keyed on a host column.

    Args:
        table: Child table. Also the default property name of the nested data.
        type: ``object`` for one child row per host row, ``array`` for many
    """

    def __init__(self, table: Optional[str] = None, type: Union[JoinCardinality, str] = JoinCardinality.OBJECT):
        self._table: Optional[str] = None
        self._name: Optional[str] = None
        self._type = JoinCardinality(type)
        self._fields: List[Field] = []
        self._parent: Union[str, List[str], None] = None
        self._child: Union[str, List[str], None] = None
        self._link_table: Optional[str] = None
        self._links: List[str] = []
        self._left_join: List[LeftJoin] = []
        self._where: List[Union[Callable[["Query"], Any], Tuple[str, Any, str]]] = []
        self._where_set = False
        self._order: Optional[str] = None
        self._alias_parent_table: Optional[str] = None
        self._validators: List[Tuple[str, JoinValidator]] = []
        self._get = True
        self._set = True

        if table is not None:
            self.table(table)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def child_table(self) -> Optional[str]:
        return self._table

    @property
    def property_name(self) -> Optional[str]:
        return self._name

    @property
    def cardinality(self) -> JoinCardinality:
        return self._type

    @property
    def link_table(self) -> Optional[str]:
        return self._link_table

    @property
    def field_list(self) -> Tuple[Field, ...]:
        return tuple(self._fields)

    def table(self, table: str) -> "Join":
        """Set the child table; the property name follows it."""
        self._table = table
        self._name = table
        return self

    def name(self, name: str) -> "Join":
        """Property of the host row the nested data is written to."""
        self._name = name
        return self

    def type(self, cardinality: Union[JoinCardinality, str]) -> "Join":
        self._type = JoinCardinality(cardinality)
        return self

    def get(self, flag: bool) -> "Join":
        self._get = bool(flag)
        return self

    def set(self, flag: bool) -> "Join":
        self._set = bool(flag)
        return self

    def fields(self, *fields: Union[Field, List[Field]]) -> "Join":
        for field in fields:
            if isinstance(field, (list, tuple)):
                self.fields(*field)
            else:
                self._fields.append(field)
        return self

    def join(self, parent: Union[str, List[str]], child: Union[str, List[str]], table: Optional[str] = None) -> "Join":
        """Configure the join columns directly.

        Without ``table``, ``parent`` is the host column and ``child`` the
        child column. With a link ``table``, both are pairs: ``parent`` is
        ``[host column, link column]`` and ``child`` is ``[child column, link
        column]``.
        """
        self._parent = parent
        self._child = child
        self._link_table = table
        return self

    def link(self, field1: str, field2: str) -> "Join":
        """Declare one ``table.column`` equality of the join.

        Call once for a direct join and twice for a join through a link table.
        """
        if "." not in field1 or "." not in field2:
            raise validation_error("Link fields must contain both the table name and the column name")

        if len(self._links) >= 4:
            raise validation_error("Link method cannot be called more than twice for a single instance")

        self._links.extend([field1, field2])
        return self

    def left_join(self, table: str, field1: str, operator: Optional[str] = None, field2: Optional[str] = None) -> "Join":
        self._left_join.append(LeftJoin(table=table, field1=field1, operator=operator, field2=field2))
        return self

    def where(self, key: Union[str, Callable[["Query"], Any]], value: Any = None, op: str = "=") -> "Join":
        """Restrict the child rows. ``key`` may be a callable receiving the query."""
        if callable(key):
            self._where.append(key)
        else:
            self._where.append((key, value, op))
        return self

    def where_set(self, flag: bool) -> "Join":
        """Also write the ``where`` values into child rows created by the join."""
        self._where_set = bool(flag)
        return self

    def order(self, order: str) -> "Join":
        self._order = order
        return self

    def alias_parent_table(self, alias: str) -> "Join":
        """Alias for the host table, for joins of a table onto itself."""
        self._alias_parent_table = alias
        return self

    def validator(self, field_name: str, fn: JoinValidator) -> "Join":
        """Validate the nested data as a whole: ``fn(host, action, data)``."""
        self._validators.append((field_name, fn))
        return self

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def data(self, host: "EditorHost", rows: List[Dict[str, Any]]) -> None:
        """Attach the nested data to ``rows`` read by ``host``.

        Raises:
            GridSQLError: VALIDATION_ERROR when the host has a compound key,
                or when the join column is neither the host key nor read by
                one of the host's fields.
        """
        if not self._get:
            return

        cols = self._resolve(host)
        host_table, local_table = self._host_tables(host)
        join_field = cols.parent[0] if cols.link_table else cols.parent

        if len(host.pkey) > 1:
            raise validation_error(
                "Row joins are not supported with a compound primary key for the host table"
            )

        if not rows:
            return

        pkey = host.pkey[0]
        pkey_is_join = pkey == join_field or pkey == f"{local_table}.{join_field}"

        query = (
            host.db.query(StatementKind.SELECT)
            .distinct(True)
            .get(f"{local_table}.{join_field} as {JOIN_PKEY_ALIAS}")
            .get(self._columns("get"))
            .table(f"{host_table} as {local_table}")
        )

        if self._order:
            query.order(self._order)

        query.left_join(self._left_join)
        self._apply_where(query)

        if cols.link_table:
            query.join(
                cols.link_table,
                f"{local_table}.{cols.parent[0]} = {cols.link_table}.{cols.parent[1]}",
            ).join(
                self._table,
                f"{self._table}.{cols.child[0]} = {cols.link_table}.{cols.child[1]}",
            )
        else:
            query.join(
                self._table,
                f"{self._table}.{cols.child} = {local_table}.{cols.parent}",
            )

        read_field = None
        if prop_exists(f"{host_table}.{join_field}", rows[0]):
            read_field = f"{host_table}.{join_field}"
        elif prop_exists(join_field, rows[0]):
            read_field = join_field
        elif not pkey_is_join:
            raise validation_error(
                f"Join was performed on the field '{join_field}' which was not included in "
                "the field list. The join field must be included as a regular field.",
                field=join_field,
            )

        def row_key(row: Mapping[str, Any]) -> Any:
            if pkey_is_join:
                return row["DT_RowId"].replace(host.id_prefix, "")
            return read_prop(read_field, row)

        if len(rows) < host.join_batch_threshold:
            query.where_in(f"{local_table}.{join_field}", [row_key(row) for row in rows])

        joined: Dict[str, Any] = {}
        result = query.exec()
        row = result.fetch()
        while row is not None:
            inner: Dict[str, Any] = {}
            for field in self._fields:
                if field.apply("get"):
                    field.write(inner, row)

            key = str(row[JOIN_PKEY_ALIAS])
            if self._type == JoinCardinality.OBJECT:
                joined[key] = inner
            else:
                joined.setdefault(key, []).append(inner)

            row = result.fetch()

        for row in rows:
            key = str(row_key(row))
            if key in joined:
                row[self._name] = joined[key]
            else:
                row[self._name] = {} if self._type == JoinCardinality.OBJECT else []

    def create(self, host: "EditorHost", parent_id: Any, data: Mapping[str, Any]) -> None:
        """Write the nested data submitted for a new host row."""
        if (
            not self._set
            or data.get(self._name) is None
            or data.get(f"{self._name}-many-count") is None
        ):
            return

        cols = self._resolve(host)

        if self._type == JoinCardinality.OBJECT:
            self._insert(host.db, cols, parent_id, data[self._name])
        else:
            for item in data[self._name]:
                self._insert(host.db, cols, parent_id, item)

    def update(self, host: "EditorHost", parent_id: Any, data: Mapping[str, Any]) -> None:
        """Write the nested data submitted for an edited host row.

        One-to-one data is updated in place (or inserted). One-to-many data is
        replaced: existing child rows are removed and the submitted ones
        created, so columns outside the field list are not preserved.
        """
        if not self._set or data.get(f"{self._name}-many-count") is None:
            return

        if self._type == JoinCardinality.OBJECT:
            self._update_row(host.db, self._resolve(host), parent_id, data.get(self._name) or {})
        else:
            self.remove(host, [parent_id])
            self.create(host, parent_id, data)

    def remove(self, host: "EditorHost", ids: List[Any]) -> None:
        """Delete the child (or link) rows of the host rows ``ids``."""
        if not self._set:
            return

        cols = self._resolve(host)
        ids = list(ids)

        if cols.link_table:
            (
                host.db.query(StatementKind.DELETE)
                .table(cols.link_table)
                .or_where(cols.parent[1], ids)
                .exec()
            )
        else:
            query = (
                host.db.query(StatementKind.DELETE)
                .table(self._table)
                .where_group(lambda q: q.or_where(cols.child, ids))
            )
            self._apply_where(query)
            query.exec()

    def validate(
        self,
        errors: List[Dict[str, Any]],
        host: "EditorHost",
        data: Mapping[str, Any],
        action: str,
    ) -> None:
        """Append ``{"name", "status"}`` errors for the nested data."""
        if not self._set and data.get(f"{self._name}-many-count") is None:
            return

        default = {} if self._type == JoinCardinality.OBJECT else []
        join_data = data.get(self._name)
        if join_data is None:
            join_data = default

        for field_name, fn in self._validators:
            result = fn(host, action, join_data)
            if isinstance(result, str):
                errors.append({"name": field_name, "status": result})

        if self._type == JoinCardinality.OBJECT:
            self._validate_fields(errors, host, join_data, f"{self._name}.", action)
        else:
            for item in join_data:
                self._validate_fields(errors, host, item, f"{self._name}[].", action)

    def options(self, out: Dict[str, Any], db: "Database", refresh: bool) -> None:
        """Add the option lists of the join's fields to ``out``."""
        for field in self._fields:
            options = field.options_exec(db, refresh)
            if options is None:
                continue

            if self._type == JoinCardinality.OBJECT:
                out[f"{self._name}.{field.name}"] = options
            else:
                out[f"{self._name}[].{field.name}"] = options

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _host_tables(self, host: "EditorHost") -> Tuple[str, str]:
        host_table = host.table[0]
        alias = self._alias_parent_table
        if " as " in host_table:
            host_table, alias = [part.strip() for part in host_table.split(" as ", 1)]
        return host_table, alias or host_table

    def _resolve(self, host: "EditorHost") -> "_JoinColumns":
        """Join columns from ``join()``, or worked out from the links for ``host``."""
        if self._parent is not None or not self._links:
            return _JoinColumns(self._parent, self._child, self._link_table)

        host_names = set(self._host_tables(host))
        links = [link.split(".") for link in self._links]

        if len(links) == 2:
            first, second = links
            if first[0] in host_names:
                return _JoinColumns(first[1], second[1], None)
            return _JoinColumns(second[1], first[1], None)

        link_table = links[3][0]
        for table, _column in links:
            if table not in host_names and table != self._table:
                link_table = table
                break

        return _JoinColumns([links[0][1], links[1][1]], [links[2][1], links[3][1]], link_table)

    def _apply_where(self, query: "Query") -> None:
        for condition in self._where:
            if callable(condition):
                condition(query)
            else:
                key, value, op = condition
                query.where(key, value, op)

    def _columns(self, direction: str) -> List[str]:
        columns = []
        for field in self._fields:
            if not field.apply(direction):
                continue
            if "." not in field.db_field:
                columns.append(f"{self._table}.{field.db_field} as {field.db_field}")
            else:
                columns.append(field.db_field)
        return columns

    def _static_where(self) -> List[Tuple[str, Any, str]]:
        return [condition for condition in self._where if not callable(condition)]

    def _insert(self, db: "Database", cols: "_JoinColumns", parent_id: Any, data: Mapping[str, Any]) -> None:
        if cols.link_table:
            (
                db.query(StatementKind.INSERT)
                .table(cols.link_table)
                .set(cols.parent[1], parent_id)
                .set(cols.child[1], data.get(cols.child[0]))
                .exec()
            )
            return

        query = db.query(StatementKind.INSERT).table(self._table).set(cols.child, parent_id)

        for field in self._fields:
            if field.apply("set", data):
                query.set(field.db_field, field.val("set", data))

        if self._where_set:
            for key, value, _op in self._static_where():
                query.set(key, value)

        query.exec()

    def _update_row(self, db: "Database", cols: "_JoinColumns", parent_id: Any, data: Mapping[str, Any]) -> None:
        if cols.link_table:
            db.push(
                cols.link_table,
                {
                    cols.parent[1]: parent_id,
                    cols.child[1]: data.get(cols.child[0]),
                },
                {cols.parent[1]: parent_id},
            )
            return

        values = {cols.child: parent_id}
        for field in self._fields:
            if field.apply("set", data):
                values[field.db_field] = field.val("set", data)

        where = {cols.child: parent_id}
        for key, value, _op in self._static_where():
            where[key] = value
            if self._where_set:
                values[key] = value

        db.push(self._table, values, where)

    def _validate_fields(
        self,
        errors: List[Dict[str, Any]],
        host: "EditorHost",
        data: Mapping[str, Any],
        prefix: str,
        action: str,
    ) -> None:
        for field in self._fields:
            result = field.validate(data, host, action=action)
            if result is not True:
                errors.append({"name": prefix + field.name, "status": result})


class Mjoin(Join):
    """One-to-many row join: the nested data is a list per host row."""

    def __init__(self, table: Optional[str] = None):
        super().__init__(table, JoinCardinality.ARRAY)
