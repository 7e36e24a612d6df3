"""Property request models."""

from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from ....core.exceptions import ValidationError
from ....core.shared.validation import Identifier
from ..entities import PropertyInput, normalize_property_value


class PropertyRequest(BaseModel):
    """Request model for setting a property on any owner."""

    name: Identifier = Field(..., description="Property name, unique per owner")
    value: Any = Field(None, description="Null, string, finite number, boolean, list or string-keyed map")
    hidden: bool = Field(False, description="Exclude from default reads")

    @field_validator("value")
    @classmethod
    def validate_value(cls, v):
        """Reject values outside the supported shapes."""
        try:
            return normalize_property_value(v)
        except ValidationError as e:
            raise ValueError(e.message)

    def to_input(self) -> PropertyInput:
        return PropertyInput(name=self.name, value=self.value, hidden=self.hidden)


def ensure_unique_names(properties: List[PropertyRequest]) -> List[PropertyRequest]:
    """Reject two initial properties sharing one name."""
    seen = set()
    for prop in properties:
        if prop.name in seen:
            raise ValueError(f"Duplicate property name '{prop.name}'")
        seen.add(prop.name)
    return properties
