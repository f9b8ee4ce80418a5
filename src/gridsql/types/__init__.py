from gridsql.types.base import GridBaseModel
from gridsql.types.query import LeftJoin

__all__ = ["GridBaseModel", "LeftJoin"]
