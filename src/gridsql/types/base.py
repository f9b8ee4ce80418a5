"""Base model class for gridsql models with serialization support."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class GridBaseModel(BaseModel):
    """Base model for gridsql models with built-in serialization."""
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a plain dictionary, dropping unset optional values."""
        return self.model_dump(by_alias=False, exclude_none=True)
