"""Role request models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ....core.shared.validation import Identifier
from ...properties.models import PropertyRequest, ensure_unique_names


class RoleCreateRequest(BaseModel):
    """Request model for creating a role inside a tenant."""

    id: Identifier = Field(..., description="Role id, unique within the tenant")
    name: Identifier = Field(..., description="Role display name")
    description: Optional[str] = Field(None, description="Role description")
    properties: List[PropertyRequest] = Field(default_factory=list, description="Initial properties")

    @field_validator("properties")
    @classmethod
    def validate_properties(cls, v):
        return ensure_unique_names(v)


class RoleUpdateRequest(BaseModel):
    """Request model for updating role information."""

    name: Optional[Identifier] = Field(None)
    description: Optional[str] = Field(None)
