"""Tenant request models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ....core.shared.validation import Identifier
from ...properties.models import PropertyRequest, ensure_unique_names


class TenantCreateRequest(BaseModel):
    """Request model for creating a new tenant."""

    id: Identifier = Field(..., description="Caller-assigned tenant id")
    name: Identifier = Field(..., description="Tenant display name")
    description: Optional[str] = Field(None, description="Tenant description")
    properties: List[PropertyRequest] = Field(default_factory=list, description="Initial properties")

    @field_validator("properties")
    @classmethod
    def validate_properties(cls, v):
        return ensure_unique_names(v)


class TenantUpdateRequest(BaseModel):
    """Request model for updating tenant information."""

    name: Optional[Identifier] = Field(None, description="Tenant display name")
    description: Optional[str] = Field(None, description="Tenant description")
