"""Dotted-path access into nested row dictionaries.

Field names such as ``users.first_name`` address nested data: reading
walks one mapping per segment, writing creates the intermediate mappings.
A name without a dot is a plain key.
"""

from typing import Any, Mapping, MutableMapping

from gridsql.common.exceptions import duplicate_property_error, property_conflict_error


def prop_exists(name: str, data: Any) -> bool:
    """Return True when ``name`` resolves to a non-null value in ``data``."""
    return read_prop(name, data) is not None


def read_prop(name: str, data: Any) -> Any:
    """Read a dotted property, returning ``None`` when any segment is missing."""
    if not isinstance(data, Mapping):
        return None

    if "." not in name:
        return data.get(name)

    inner: Any = data
    for segment in name.split("."):
        if not isinstance(inner, Mapping) or inner.get(segment) is None:
            return None
        inner = inner[segment]

    return inner


def write_prop(out: MutableMapping[str, Any], name: str, value: Any) -> None:
    """Write ``value`` at a dotted path in ``out``.

    Raises:
        GridSQLError: PROPERTY_CONFLICT when an intermediate segment already
            holds a non-mapping value, DUPLICATE_PROPERTY when the dotted
            leaf has already been written.
    """
    if "." not in name:
        out[name] = value
        return

    segments = name.split(".")
    inner = out
    for segment in segments[:-1]:
        if inner.get(segment) is None:
            inner[segment] = {}
        elif not isinstance(inner[segment], MutableMapping):
            raise property_conflict_error(name)

        inner = inner[segment]

    leaf = segments[-1]
    if leaf in inner:
        raise duplicate_property_error(name)

    inner[leaf] = value
