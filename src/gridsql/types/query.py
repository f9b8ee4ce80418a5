"""Typed descriptors passed into the query builder."""

from typing import Any, Mapping, Optional, Union

from pydantic import Field

from gridsql.types.base import GridBaseModel


class LeftJoin(GridBaseModel):
    """One LEFT JOIN requested through ``Query.left_join``.

    When ``operator`` and ``field2`` are both omitted, ``field1`` is used as a
    complete, unquoted join condition.

    Attributes:
        table: Table to join, optionally aliased (``users as u``)
        field1: Left hand side of the condition, or the full condition
        operator: Comparison operator
        field2: Right hand side of the condition
    """
    table: str = Field(..., min_length=1)
    field1: str = Field(..., min_length=1)
    operator: Optional[str] = None
    field2: Optional[str] = None

    @property
    def is_raw(self) -> bool:
        return self.operator is None and self.field2 is None

    @classmethod
    def coerce(cls, value: Union["LeftJoin", Mapping[str, Any]]) -> "LeftJoin":
        if isinstance(value, cls):
            return value
        return cls(**dict(value))
