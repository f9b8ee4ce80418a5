"""Editor host.

``EditorHost`` ties a table, its fields, row joins and left joins to a
``Database``. It reads rows in the shape the client expects (``DT_RowId``
plus one property per field, nested join data included) and turns submitted
data back into INSERT, UPDATE and DELETE statements.

Row identifiers are the primary key value prefixed with ``id_prefix``.
Compound keys join their column values with a separator derived from the
key's column names.
"""

import zlib
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from gridsql.common.exceptions import malformed_compound_key_error, validation_error
from gridsql.constants.sql import StatementKind
from gridsql.editor.field import Field
from gridsql.editor.join import Join
from gridsql.logging import get_logger
from gridsql.types.query import LeftJoin
from gridsql.utils.props import prop_exists, read_prop, write_prop

logger = get_logger(__name__)


class EditorHost:
    """Table, fields and joins edited through one client instance.

    Args:
        db: Database to read from and write to
        table: Table name, or names. The first one receives inserts.
        pkey: Primary key column(s). Defaults to ``["id"]``.
        id_prefix: Prefix of the ``DT_RowId`` of every row
        fields: Field descriptors
        joins: Row joins (``Join`` / ``Mjoin``)
        left_join: Left joins added to the read query
        use_transaction: Run create, edit and remove in a transaction
        read_table: Table(s) or view(s) to read from instead of ``table``
        join_batch_threshold: Row count below which row joins restrict their
            query to the rows read. Defaults to the configured setting.
    """

    def __init__(
        self,
        db,
        table: Union[str, Sequence[str]],
        pkey: Union[str, Sequence[str], None] = None,
        id_prefix: str = "row_",
        fields: Optional[Iterable[Field]] = None,
        joins: Optional[Iterable[Join]] = None,
        left_join: Optional[Iterable[Union[LeftJoin, Mapping[str, Any]]]] = None,
        use_transaction: bool = True,
        read_table: Union[str, Sequence[str], None] = None,
        join_batch_threshold: Optional[int] = None,
    ):
        self.db = db
        self.table: List[str] = [table] if isinstance(table, str) else list(table)
        self.read_table: List[str] = (
            [read_table] if isinstance(read_table, str) else list(read_table or [])
        )
        self.pkey: List[str] = ["id"] if pkey is None else ([pkey] if isinstance(pkey, str) else list(pkey))
        self.id_prefix = id_prefix
        self.fields: List[Field] = list(fields or [])
        self.joins: List[Join] = list(joins or [])
        self.left_join: List[LeftJoin] = [LeftJoin.coerce(join) for join in left_join or []]
        self.use_transaction = use_transaction
        self._join_batch_threshold = join_batch_threshold

    @property
    def join_batch_threshold(self) -> int:
        if self._join_batch_threshold is None:
            from gridsql.settings import get_settings

            self._join_batch_threshold = get_settings().join_batch_threshold
        return self._join_batch_threshold

    # ------------------------------------------------------------------
    # Primary keys
    # ------------------------------------------------------------------

    def pkey_separator(self) -> str:
        """Separator between the values of a compound key in a row id."""
        checksum = zlib.crc32(",".join(self.pkey).encode("utf-8")) & 0xFFFFFFFF
        return "_%08x_" % checksum

    def pkey_to_value(self, row: Mapping[str, Any], flat: bool = False) -> str:
        """Row id (without prefix) of ``row``.

        Args:
            row: Row data
            flat: ``row`` is keyed by column name rather than by nested
                property path

        Raises:
            GridSQLError: VALIDATION_ERROR when a key column is missing or null
        """
        values = []

        for column in self.pkey:
            if flat:
                if column not in row:
                    raise validation_error(
                        "Primary key element is not available in data set.", field=column
                    )
                value = row[column]
            else:
                if not prop_exists(column, row):
                    raise validation_error(
                        "Primary key element is not available in data set.", field=column
                    )
                value = read_prop(column, row)

            if value is None:
                raise validation_error("Primary key value is null.", field=column)

            values.append(str(value))

        return self.pkey_separator().join(values)

    def pkey_to_array(
        self,
        value: str,
        flat: bool = False,
        pkey: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Split a row id into ``{column: value}``.

        Args:
            value: Row id, with or without the id prefix
            flat: Key the result by column name; otherwise nest dotted names
            pkey: Key columns to split into. Defaults to the host's.

        Raises:
            GridSQLError: MALFORMED_COMPOUND_KEY when the number of values does
                not match the number of key columns
        """
        pkey = list(pkey) if pkey is not None else self.pkey
        value = str(value).replace(self.id_prefix, "", 1)

        parts = value.split(self.pkey_separator()) if len(pkey) > 1 else [value]
        if len(parts) != len(pkey):
            raise malformed_compound_key_error(value, expected=len(pkey), received=len(parts))

        out: Dict[str, Any] = {}
        for column, part in zip(pkey, parts):
            if flat:
                out[column] = part
            else:
                write_prop(out, column, part)
        return out

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def read(self, row_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Read all rows, or the row ``row_id``, in client shape."""
        query = (
            self.db.query(StatementKind.SELECT)
            .table(self.read_table or self.table)
            .get(self.pkey)
        )

        for field in self.fields:
            if field.db_field in self.pkey:
                continue
            if field.apply("get") and field.get_value_source is None:
                query.get(field.db_field)

        query.left_join(self.left_join)

        if row_id is not None:
            query.where(self.pkey_to_array(row_id, True))

        rows = []
        for row in query.exec().fetch_all():
            inner: Dict[str, Any] = {"DT_RowId": self.id_prefix + self.pkey_to_value(row, True)}

            for field in self.fields:
                if field.apply("get"):
                    field.write(inner, row)

            rows.append(inner)

        for join in self.joins:
            join.data(self, rows)

        return rows

    def create(self, values: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Insert a row from submitted ``values`` and return it as read back."""
        return self._run(self._create, values)

    def edit(self, row_id: str, values: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update the row ``row_id`` from submitted ``values`` and return it as read back."""
        return self._run(self._edit, row_id, values)

    def remove(self, row_ids: Iterable[str]) -> None:
        """Delete rows, removing their row join data first."""
        self._run(self._remove, row_ids)

    def validate(self, action: str, data: Mapping[str, Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Validate submitted rows.

        Args:
            action: ``create`` or ``edit``; other actions are not validated
            data: Submitted values keyed by row id

        Returns:
            ``{"name", "status"}`` errors; empty when the data is valid
        """
        errors: List[Dict[str, Any]] = []

        if action not in ("create", "edit"):
            return errors

        for row_id, values in data.items():
            key = str(row_id).replace(self.id_prefix, "", 1)

            for field in self.fields:
                result = field.validate(values, self, key, action)
                if result is not True:
                    errors.append({"name": field.name, "status": result})

            for join in self.joins:
                join.validate(errors, self, values, action)

        return errors

    def options(self, refresh: bool = False) -> Dict[str, Any]:
        """Option lists of the fields and joins, keyed by field name."""
        out: Dict[str, Any] = {}

        for field in self.fields:
            options = field.options_exec(self.db, refresh)
            if options is not None:
                out[field.name] = options

        for join in self.joins:
            join.options(out, self.db, refresh)

        return out

    def search_pane_options(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        """Search pane options of every field with a pane provider."""
        out: Dict[str, Any] = {}
        for field in self.fields:
            options = field.search_pane_options_exec(self, request, self.fields, self.left_join)
            if options is not None:
                out[field.name] = options
        return out

    def search_builder_options(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        """Search builder options of every field with a builder provider."""
        out: Dict[str, Any] = {}
        for field in self.fields:
            options = field.search_builder_options_exec(self, request, self.fields, self.left_join)
            if options is not None:
                out[field.name] = options
        return out

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        if not self.use_transaction:
            return fn(*args)

        with self.db.transaction_scope():
            return fn(*args)

    def _create(self, values: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        table = self.table[0]

        if len(self.pkey) > 1:
            self._check_compound_insert(values)

        query = self.db.query(StatementKind.INSERT).table(table).pkey(self._columns(self.pkey))
        has_values = False

        for field in self._table_fields(table):
            if field.apply("create", values):
                query.set(self._column(field.db_field), field.val("set", values))
                has_values = True

        if not has_values:
            raise validation_error("No values submitted for the new row", field=table)

        result = query.exec()

        if len(self.pkey) > 1:
            submitted: Dict[str, Any] = {}
            for field in self.fields:
                if field.apply("create", values):
                    submitted[field.db_field] = field.val("set", values)
            row_id = self.pkey_to_value(submitted, True)
        else:
            insert_id = result.insert_id()
            row_id = self._merge_submitted_pkey("" if insert_id is None else str(insert_id), values)

        logger.info("Created row", extra={"table": table, "row_id": row_id})

        for join in self.joins:
            join.create(self, row_id, values)

        return self._read_one(row_id)

    def _edit(self, row_id: str, values: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        table = self.table[0]
        row_id = str(row_id).replace(self.id_prefix, "", 1)

        query = (
            self.db.query(StatementKind.UPDATE)
            .table(table)
            .where(self._columns_where(self.pkey_to_array(row_id, True)))
        )
        has_values = False

        for field in self._table_fields(table):
            if field.apply("edit", values):
                query.set(self._column(field.db_field), field.val("set", values))
                has_values = True

        if has_values:
            query.exec()

        for join in self.joins:
            join.update(self, row_id, values)

        logger.info("Edited row", extra={"table": table, "row_id": row_id})
        return self._read_one(self._merge_submitted_pkey(row_id, values))

    def _remove(self, row_ids: Iterable[str]) -> None:
        ids = [str(row_id).replace(self.id_prefix, "", 1) for row_id in row_ids]
        if not ids:
            return

        for join in self.joins:
            join.remove(self, ids)

        for table in self.table:
            query = self.db.query(StatementKind.DELETE).table(table)

            for row_id in ids:
                condition = self._columns_where(self.pkey_to_array(row_id, True))
                query.or_where(lambda q, condition=condition: q.where(condition))

            query.exec()

        logger.info("Removed rows", extra={"table": self.table[0], "count": len(ids)})

    def _read_one(self, row_id: str) -> Optional[Dict[str, Any]]:
        rows = self.read(row_id)
        return rows[0] if rows else None

    def _check_compound_insert(self, values: Mapping[str, Any]) -> None:
        for column in self.pkey:
            field = self._find_field(column)
            if field is None or not field.apply("create", values):
                raise validation_error(
                    "When inserting into a compound key table, all fields that are part "
                    "of the compound key must be submitted with a specific value.",
                    field=column,
                )

    def _merge_submitted_pkey(self, row_id: str, values: Mapping[str, Any]) -> str:
        """Row id after an edit of key fields, or a create that submits them."""
        keys = self.pkey_to_array(row_id, True)

        for column in self.pkey:
            field = self._find_field(column)
            if field is not None and field.apply("edit", values):
                keys[column] = field.val("set", values)

        return self.pkey_to_value(keys, True)

    def _find_field(self, column: str) -> Optional[Field]:
        for field in self.fields:
            if field.db_field == column or self._column(field.db_field) == self._column(column):
                return field
        return None

    def _table_fields(self, table: str) -> List[Field]:
        """Fields written to ``table``: unqualified ones, or those qualified with it."""
        names = {part.strip() for part in table.split(" as ")}
        return [
            field
            for field in self.fields
            if "." not in field.db_field or field.db_field.split(".")[0] in names
        ]

    @staticmethod
    def _column(db_field: str) -> str:
        return db_field.split(".")[-1]

    def _columns(self, pkey: Sequence[str]) -> List[str]:
        return [self._column(column) for column in pkey]

    def _columns_where(self, keys: Mapping[str, Any]) -> Dict[str, Any]:
        return {self._column(column): value for column, value in keys.items()}
