from gridsql.utils.decorators import traced
from gridsql.utils.props import prop_exists, read_prop, write_prop

__all__ = ["traced", "prop_exists", "read_prop", "write_prop"]
