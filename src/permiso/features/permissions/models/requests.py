"""Permission request models."""

from typing import Optional

from pydantic import BaseModel, Field

from ....core.shared.validation import Identifier


class GrantRequest(BaseModel):
    """A single {action on resource} for a user or role."""

    subject_id: Identifier = Field(..., description="User id or role id receiving the grant")
    resource_id: Identifier = Field(..., description="Exact resource id")
    action: Identifier = Field(..., description="Action name, compared verbatim")


class PermissionFilter(BaseModel):
    """Optional exact filters applied before aggregation."""

    resource_id: Optional[Identifier] = Field(None)
    action: Optional[Identifier] = Field(None)


class PrefixFilter(BaseModel):
    """Resource id prefix (empty matches every resource) plus exact action."""

    resource_id_prefix: str = Field(..., description="Prefix compared with str.startswith")
    action: Optional[Identifier] = Field(None)
