"""Resource request models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ....core.shared.validation import Identifier
from ...properties.models import PropertyRequest, ensure_unique_names


class ResourceCreateRequest(BaseModel):
    """Request model for registering a resource."""

    id: Identifier = Field(..., description="Hierarchical resource id, e.g. docs/readme")
    name: Optional[str] = Field(None, description="Resource display name")
    description: Optional[str] = Field(None, description="Resource description")
    properties: List[PropertyRequest] = Field(default_factory=list, description="Initial properties")

    @field_validator("properties")
    @classmethod
    def validate_properties(cls, v):
        return ensure_unique_names(v)


class ResourceUpdateRequest(BaseModel):
    """Request model for updating resource information."""

    name: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
