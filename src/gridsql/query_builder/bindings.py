"""Placeholder naming and the ordered binding list of one statement."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

# Characters that cannot appear in a bare placeholder name, in replacement order
_UNSAFE_CHARACTERS = (
    (".", "_1_"),
    ("-", "_2_"),
    ("/", "_3_"),
    ("\\", "_4_"),
    (" ", "_5_"),
)

_PLACEHOLDER_RE = re.compile(r"(?<!:):(\w+)")


def sanitize_binding_name(name: str) -> str:
    """Turn a field path such as ``users.first-name`` into a placeholder name.

    A leading ``:`` is dropped; placeholders are stored bare and rendered with
    the colon by the statement builders.

    Example:
        >>> sanitize_binding_name(":users.first-name")
        'users_1_first_2_name'
    """
    name = name[1:] if name.startswith(":") else name
    for character, token in _UNSAFE_CHARACTERS:
        name = name.replace(character, token)
    return name


@dataclass
class Binding:
    """A single placeholder value with an optional SQLAlchemy type hint."""

    name: str
    value: Any
    type_hint: Optional[Any] = None


class BindingList:
    """Ordered placeholder values for one statement.

    Names are unique: binding a name a second time replaces the value in place
    and keeps the original position.
    """

    def __init__(self) -> None:
        self._items: List[Binding] = []

    def add(self, name: str, value: Any, type_hint: Optional[Any] = None) -> str:
        safe_name = sanitize_binding_name(name)
        for binding in self._items:
            if binding.name == safe_name:
                binding.value = value
                binding.type_hint = type_hint
                return safe_name

        self._items.append(Binding(safe_name, value, type_hint))
        return safe_name

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def order_by(self, sql: str) -> None:
        """Reorder the bindings to follow their placeholders in ``sql``.

        Bindings without a placeholder keep their relative order at the end.
        """
        positions: Dict[str, int] = {}
        for match in _PLACEHOLDER_RE.finditer(sql):
            positions.setdefault(match.group(1), match.start())

        missing = len(sql)
        self._items.sort(key=lambda binding: positions.get(binding.name, missing))

    def names(self) -> List[str]:
        return [binding.name for binding in self._items]

    def as_params(self) -> Dict[str, Any]:
        return {binding.name: binding.value for binding in self._items}

    def for_debug(self) -> List[Dict[str, Any]]:
        return [
            {"name": f":{binding.name}", "value": binding.value, "type": binding.type_hint}
            for binding in self._items
        ]
