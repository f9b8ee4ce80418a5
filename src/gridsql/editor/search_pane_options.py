"""Option lists for search panes.

Each pane lists the distinct values of one column with the number of rows
holding each value. With ``viewCount`` or ``cascade`` enabled, a second
grouped query counts the rows left after the selections of the other panes.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from gridsql.constants.sql import StatementKind
from gridsql.editor.options import order_columns, sort_by_label
from gridsql.types.query import LeftJoin

if TYPE_CHECKING:
    from gridsql.editor.field import Field
    from gridsql.editor.host import EditorHost


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "on", "yes")
    return bool(value)


def _is_null_selection(flags: Any, index: int) -> bool:
    if isinstance(flags, Mapping):
        return _flag(flags.get(index, flags.get(str(index))), False)
    return index < len(flags) and _flag(flags[index], False)


def _selections(request: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Selected values per pane, with null selections as ``None``."""
    nulls = request.get("searchPanes_null") or {}
    selections: Dict[str, List[Any]] = {}

    for name, values in (request.get("searchPanes") or {}).items():
        flags = nulls.get(name) or []
        selections[name] = [
            None if _is_null_selection(flags, index) else selected
            for index, selected in enumerate(values)
        ]

    return selections


def merge_left_joins(
    own: Sequence[LeftJoin],
    inherited: Optional[Sequence[Union[LeftJoin, Mapping[str, Any]]]],
) -> List[LeftJoin]:
    """``own`` plus the ``inherited`` joins on tables ``own`` does not join already."""
    merged = list(own)
    tables = {join.table for join in merged}

    for join in inherited or []:
        join = LeftJoin.coerce(join)
        if join.table not in tables:
            merged.append(join)
            tables.add(join.table)

    return merged


def resolve_table(table: Any, host: "EditorHost") -> Any:
    if table is not None:
        return table
    return host.read_table or host.table


class SearchPaneOptions:
    """Distinct values of one column, with totals and counts.

    Value, label and table default to the field's database column and the
    host's read table.
    """

    def __init__(self) -> None:
        self._table: Optional[str] = None
        self._value: Optional[str] = None
        self._label: List[str] = []
        self._left_join: List[LeftJoin] = []
        self._where: Any = None
        self._order: Optional[str] = None
        self._render: Optional[Callable[[Any], Any]] = None

    def table(self, table: str) -> "SearchPaneOptions":
        self._table = table
        return self

    def value(self, value: str) -> "SearchPaneOptions":
        self._value = value
        return self

    def label(self, label: Union[str, List[str]]) -> "SearchPaneOptions":
        self._label = [label] if isinstance(label, str) else list(label)
        return self

    def left_join(self, table: str, field1: str, operator: Optional[str] = None, field2: Optional[str] = None) -> "SearchPaneOptions":
        self._left_join.append(LeftJoin(table=table, field1=field1, operator=operator, field2=field2))
        return self

    def where(self, where: Any) -> "SearchPaneOptions":
        self._where = where
        return self

    def order(self, order: Optional[str]) -> "SearchPaneOptions":
        """SQL ORDER BY for the options; without one they are sorted by label."""
        self._order = order
        return self

    def render(self, fn: Callable[[Any], Any]) -> "SearchPaneOptions":
        self._render = fn
        return self

    def exec(
        self,
        field: "Field",
        host: "EditorHost",
        request: Mapping[str, Any],
        fields: Sequence["Field"],
        left_join: Optional[Sequence[Union[LeftJoin, Mapping[str, Any]]]] = None,
    ) -> List[Dict[str, Any]]:
        """Build the options of ``field``'s pane.

        Args:
            field: Field the pane filters on
            host: Editor host providing the database and table
            request: Client request parameters (``searchPanes``,
                ``searchPanes_null``, ``searchPanes_options``,
                ``searchPanesLast``)
            fields: All fields of the host; the selections of their panes
                restrict the counts
            left_join: Host left joins, added when this provider does not join
                the same table itself

        Returns:
            One ``{"label", "total", "value", "count"}`` entry per value.
        """
        if not field.apply("get") or field.get_value_source is not None:
            return []

        db = host.db
        pane_options = request.get("searchPanes_options") or {}
        view_count = _flag(pane_options.get("viewCount"), True)
        view_total = _flag(pane_options.get("viewTotal"), False)
        cascade = _flag(pane_options.get("cascade"), False)

        value = self._value or field.db_field
        label = self._label[0] if self._label else value
        table = resolve_table(self._table, host)
        render = self._render or (lambda text: text)
        joins = merge_left_joins(self._left_join, left_join)

        query = (
            db.query(StatementKind.SELECT)
            .distinct(True)
            .table(table)
            .get(f"{label} as label", f"{value} as value")
            .left_join(joins)
            .group_by(value)
            .where(self._where)
        )

        if view_total:
            query.get("COUNT(*) as total")

        if self._order:
            query.get(order_columns(self._order, [label, value]))
            query.order(self._order)

        rows = query.exec().fetch_all()

        selections = _selections(request)

        # Drop selections whose value no longer exists in the table
        if field.name in selections:
            present = {str(row["value"]) for row in rows if row["value"] is not None}
            selections[field.name] = [
                selected for selected in selections[field.name]
                if selected is None or str(selected) in present
            ]

        entries = None
        if view_count or cascade:
            entries = self._counts(field, host, request, selections, fields, table, value, joins, view_count)

        out = []
        for row in rows:
            total = row.get("total")
            count = total

            if entries is not None:
                entry = entries.get(str(row["value"]))
                count = entry["count"] if entry is not None and entry.get("count") is not None else 0
                if total is None:
                    total = count

            out.append({
                "label": render(row["label"]),
                "total": total,
                "value": row["value"],
                "count": count,
            })

        if not self._order:
            sort_by_label(out)

        return out

    def _counts(
        self,
        field: "Field",
        host: "EditorHost",
        request: Mapping[str, Any],
        selections: Dict[str, List[Any]],
        fields: Sequence["Field"],
        table: Any,
        value: str,
        joins: List[LeftJoin],
        view_count: bool,
    ) -> Dict[str, Dict[str, Any]]:
        query = (
            host.db.query(StatementKind.SELECT)
            .distinct(True)
            .table(table)
            .left_join(joins)
            .get(f"{value} as value")
            .group_by(value)
            .get("COUNT(*) as count" if view_count else "(1) as count")
        )

        last = request.get("searchPanesLast")
        for other in fields:
            name = other.name
            if name not in selections:
                continue
            # The pane changed last is counted against the other panes only
            if last is not None and field.name == last and name == last:
                continue

            def add_selected(q, other=other, name=name):
                for selected in selections[name]:
                    q.or_where(other.db_field, selected, "=")

            query.where(add_selected)

        return {str(row["value"]): row for row in query.exec().fetch_all()}
