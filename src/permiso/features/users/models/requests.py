"""User request models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ....core.shared.validation import Identifier
from ...properties.models import PropertyRequest, ensure_unique_names


class UserCreateRequest(BaseModel):
    """Request model for creating a user inside a tenant."""

    id: Identifier = Field(..., description="User id, unique within the tenant")
    identity_provider: Optional[str] = Field(None, description="External identity provider name")
    identity_provider_user_id: Optional[str] = Field(None, description="User id at the identity provider")
    properties: List[PropertyRequest] = Field(default_factory=list, description="Initial properties")
    role_ids: List[Identifier] = Field(default_factory=list, description="Roles to assign on creation")

    @field_validator("properties")
    @classmethod
    def validate_properties(cls, v):
        return ensure_unique_names(v)


class UserUpdateRequest(BaseModel):
    """Request model for updating a user's identity link."""

    identity_provider: Optional[str] = Field(None)
    identity_provider_user_id: Optional[str] = Field(None)
