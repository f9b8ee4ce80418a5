"""Option lists for search builder value inputs."""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from gridsql.constants.sql import StatementKind
from gridsql.editor.options import sort_by_label
from gridsql.editor.search_pane_options import merge_left_joins, resolve_table
from gridsql.types.query import LeftJoin

if TYPE_CHECKING:
    from gridsql.editor.field import Field
    from gridsql.editor.host import EditorHost


class SearchBuilderOptions:
    """Distinct value / label pairs of one column, grouped by value."""

    def __init__(self) -> None:
        self._table: Optional[str] = None
        self._value: Optional[str] = None
        self._label: List[str] = []
        self._left_join: List[LeftJoin] = []
        self._where: Any = None
        self._order: Optional[str] = None
        self._render: Optional[Callable[[Any], Any]] = None

    def table(self, table: str) -> "SearchBuilderOptions":
        self._table = table
        return self

    def value(self, value: str) -> "SearchBuilderOptions":
        self._value = value
        return self

    def label(self, label: Union[str, List[str]]) -> "SearchBuilderOptions":
        self._label = [label] if isinstance(label, str) else list(label)
        return self

    def left_join(self, table: str, field1: str, operator: Optional[str] = None, field2: Optional[str] = None) -> "SearchBuilderOptions":
        self._left_join.append(LeftJoin(table=table, field1=field1, operator=operator, field2=field2))
        return self

    def where(self, where: Any) -> "SearchBuilderOptions":
        self._where = where
        return self

    def order(self, order: Optional[str]) -> "SearchBuilderOptions":
        self._order = order
        return self

    def render(self, fn: Callable[[Any], Any]) -> "SearchBuilderOptions":
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
        """Build ``{"value", "label"}`` entries for ``field``.

        Entries are sorted by label unless an SQL order is configured.
        """
        if not field.apply("get") or field.get_value_source is not None:
            return []

        value = self._value or field.db_field
        label = self._label[0] if self._label else value
        render = self._render or (lambda text: text)

        query = (
            host.db.query(StatementKind.SELECT)
            .table(resolve_table(self._table, host))
            .left_join(merge_left_joins(self._left_join, left_join))
            .where(self._where)
            .get(f"{value} as value", f"{label} as label")
            .group_by(value)
        )

        if self._order:
            query.order(self._order)

        out = [
            {"value": row["value"], "label": render(row["label"])}
            for row in query.exec().fetch_all()
        ]

        if not self._order:
            sort_by_label(out)

        return out
