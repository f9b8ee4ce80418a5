"""WHERE clause accumulation and rendering.

Conditions and parenthesis markers are kept in one flat, ordered list. The
nesting is implicit in the markers, which keeps the builder API simple
(``where_group`` just pushes a marker) and makes rendering a single pass.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple

from gridsql.query_builder.bindings import BindingList
from gridsql.query_builder.quoting import IdentifierQuoter

FragmentRenderer = Callable[[str, str, str], str]


def default_fragment(column: str, operator: str, placeholder: str) -> str:
    return f"{column} {operator} :{placeholder}"


@dataclass
class ConditionEntry:
    """Either a rendered condition or a group marker.

    Attributes:
        join_operator: ``AND`` or ``OR``, emitted before the entry when needed
        field: Quoted column for bound and null conditions, else ``None``
        fragment: Rendered condition text (``None`` for group markers)
        group: ``"("`` or ``")"`` for group markers, else ``None``
    """

    join_operator: str
    field: Optional[str] = None
    fragment: Optional[str] = None
    group: Optional[str] = None


class ConditionTree:
    """Ordered conditions and group markers of one statement.

    Args:
        quoter: Identifier quoting of the statement's dialect
        bindings: The statement's binding list, shared with the SET clause
        fragment_renderer: Renders a bound comparison; dialects override it to
            change how particular operators are written
    """

    def __init__(
        self,
        quoter: IdentifierQuoter,
        bindings: BindingList,
        fragment_renderer: Optional[FragmentRenderer] = None,
    ):
        self._quoter = quoter
        self._bindings = bindings
        self._render_fragment = fragment_renderer or default_fragment
        self._entries: List[ConditionEntry] = []
        self._in_counter = 1

    @property
    def entries(self) -> Tuple[ConditionEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add_condition(
        self,
        column: str,
        value: Any,
        operator: str = "=",
        join_operator: str = "AND",
        bind: bool = True,
    ) -> None:
        """Add ``column <operator> value``.

        ``None`` renders ``IS NULL`` (operator ``=``) or ``IS NOT NULL`` (any
        other operator) without a binding. An unbound value is treated as an
        identifier, for column to column comparisons.
        """
        index = len(self._entries)
        quoted = self._quoter.quote(column)

        if value is None:
            fragment = quoted + (" IS NULL" if operator == "=" else " IS NOT NULL")
            self._entries.append(ConditionEntry(join_operator, quoted, fragment))
        elif bind:
            placeholder = self._bindings.add(f"where_{index}", value)
            fragment = self._render_fragment(quoted, operator, placeholder)
            self._entries.append(ConditionEntry(join_operator, quoted, fragment))
        else:
            fragment = f"{quoted} {operator} {self._quoter.quote(str(value))}"
            self._entries.append(ConditionEntry(join_operator, None, fragment))

    def add_group(self, open_group: bool, join_operator: str = "AND") -> None:
        self._entries.append(ConditionEntry(join_operator, group="(" if open_group else ")"))

    def add_in_condition(
        self,
        column: str,
        values: Iterable[Any],
        join_operator: str = "AND",
    ) -> None:
        """Add ``column IN (...)`` with one placeholder per value.

        Does nothing when ``values`` is empty.
        """
        values = list(values)
        if not values:
            return

        placeholders = []
        for value in values:
            name = self._bindings.add(f"wherein{self._in_counter}", value)
            placeholders.append(f":{name}")
            self._in_counter += 1

        quoted = self._quoter.quote(column)
        fragment = f"{quoted} IN ({', '.join(placeholders)})"
        self._entries.append(ConditionEntry(join_operator, quoted, fragment))

    def is_balanced(self) -> bool:
        depth = 0
        for entry in self._entries:
            if entry.group == "(":
                depth += 1
            elif entry.group == ")":
                depth -= 1
                if depth < 0:
                    return False
        return depth == 0

    def render(self) -> str:
        """Render the WHERE clause, or ``""`` when there are no entries.

        The first entry, entries directly after ``(`` and every ``)`` are
        written without their join operator. An empty group becomes
        ``(1=1)``.
        """
        if not self._entries:
            return ""

        parts = ["WHERE "]
        previous: Optional[ConditionEntry] = None

        for entry in self._entries:
            if previous is None:
                pass
            elif entry.group == ")":
                if previous.group == "(":
                    parts.append("1=1")
            elif previous.group == "(":
                pass
            else:
                parts.append(f"{entry.join_operator} ")

            if entry.group == "(":
                parts.append("(")
            elif entry.group == ")":
                parts.append(") ")
            else:
                parts.append(f"{entry.fragment} ")

            previous = entry

        return "".join(parts)
