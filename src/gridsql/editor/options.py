"""Option lists for select, radio and checkbox inputs.

``Options`` reads ``{"label", "value"}`` pairs from a table; the search pane
and search builder providers reuse its ordering helper.
"""

import functools
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from gridsql.constants.sql import StatementKind
from gridsql.types.query import LeftJoin

if TYPE_CHECKING:
    from gridsql.database import Database


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def compare_labels(a: Any, b: Any) -> int:
    """Order two labels numerically when both are numeric, else as text.

    ``None`` sorts as an empty string.
    """
    a = "" if a is None else a
    b = "" if b is None else b

    a_number, b_number = _as_number(a), _as_number(b)
    if a_number is not None and b_number is not None:
        return (a_number > b_number) - (a_number < b_number)

    a_text, b_text = str(a), str(b)
    return (a_text > b_text) - (a_text < b_text)


def sort_by_label(options: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort option dictionaries in place by their ``label`` and return them."""
    options.sort(key=functools.cmp_to_key(lambda a, b: compare_labels(a["label"], b["label"])))
    return options


def order_columns(order: str, selected: List[str]) -> List[str]:
    """Columns named in an ORDER BY string that are not already selected.

    A DISTINCT select can only be ordered by selected columns, so these have
    to be added to the field list.
    """
    columns = []
    for term in order.split(","):
        column = term.lower().replace(" asc", "").replace(" desc", "").strip()
        if column and column not in selected:
            columns.append(column)
    return columns


class Options:
    """Label / value pairs read from the database.

    Example:
        >>> Options().table("sites").value("id").label(["name", "city"]).order("name asc")
    """

    def __init__(self) -> None:
        self._table: Optional[str] = None
        self._value: Optional[str] = None
        self._label: List[str] = []
        self._left_join: List[LeftJoin] = []
        self._where: Any = None
        self._order: Union[bool, str] = True
        self._limit: Optional[int] = None
        self._render: Optional[Callable[[Dict[str, Any]], Any]] = None
        self._search_only = False
        self._always_refresh = True
        self._fn: Optional[Callable[["Database"], Any]] = None
        self._manual: List[Dict[str, Any]] = []

    def table(self, table: str) -> "Options":
        self._table = table
        return self

    def value(self, value: Optional[str]) -> "Options":
        self._value = value
        return self

    def label(self, label: Union[str, List[str], None]) -> "Options":
        """Column(s) shown as the label; several are joined with a space."""
        if label is None:
            return self
        self._label = [label] if isinstance(label, str) else list(label)
        return self

    def left_join(self, table: str, field1: str, operator: Optional[str] = None, field2: Optional[str] = None) -> "Options":
        self._left_join.append(LeftJoin(table=table, field1=field1, operator=operator, field2=field2))
        return self

    def where(self, where: Any) -> "Options":
        """Mapping of conditions, or a callable receiving the query."""
        self._where = where
        return self

    def order(self, order: Union[bool, str]) -> "Options":
        """``True`` sorts by label after reading, a string is an SQL ORDER BY, ``False`` keeps database order."""
        self._order = order
        return self

    def limit(self, limit: Optional[int]) -> "Options":
        self._limit = limit
        return self

    def render(self, fn: Callable[[Dict[str, Any]], Any]) -> "Options":
        """Build the label from the row: ``fn(row) -> label``."""
        self._render = fn
        return self

    def search_only(self, flag: bool = True) -> "Options":
        self._search_only = bool(flag)
        return self

    def always_refresh(self, flag: bool = True) -> "Options":
        self._always_refresh = bool(flag)
        return self

    def fn(self, fn: Callable[["Database"], Any]) -> "Options":
        """Produce the options with ``fn(db)`` instead of a query."""
        self._fn = fn
        return self

    def add(self, label: Any, value: Any = None) -> "Options":
        """Append a fixed option after the database options."""
        self._manual.append({"label": label, "value": label if value is None else value})
        return self

    def exec(self, db: "Database", refresh: bool = False, search: bool = False) -> Optional[List[Dict[str, Any]]]:
        """Read the options.

        Returns ``None`` for search only options outside a search, and on a
        refresh when ``always_refresh`` is off.
        """
        if self._search_only and not search:
            return None

        if refresh and not self._always_refresh:
            return None

        if self._fn is not None:
            return self._fn(db)

        label = self._label
        value = self._value
        fields = [value] + label
        render = self._render or (
            lambda row: " ".join("" if row[column] is None else str(row[column]) for column in label)
        )

        query = (
            db.query(StatementKind.SELECT)
            .distinct(True)
            .table(self._table)
            .left_join(self._left_join)
            .get(fields)
            .where(self._where)
        )

        if isinstance(self._order, str):
            query.get(order_columns(self._order, fields))
            query.order(self._order)

        if self._limit is not None:
            query.limit(self._limit)

        out = [
            {"label": render(row), "value": row[value]}
            for row in query.exec().fetch_all()
        ]
        out.extend(dict(option) for option in self._manual)

        if self._order is True:
            sort_by_label(out)

        return out
