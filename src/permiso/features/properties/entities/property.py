"""Property bag entities.

One property table serves every owner kind; the owner is addressed by an
explicit kind tag plus id.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ....utils.timezone import utc_now
from .property_value import PropertyValue


class OwnerKind(str, Enum):
    """Entity kinds that can own properties."""
    TENANT = "tenant"
    USER = "user"
    ROLE = "role"
    RESOURCE = "resource"


@dataclass(frozen=True)
class OwnerRef:
    """Reference to a property owner."""

    kind: OwnerKind
    id: str

    @classmethod
    def tenant(cls, tenant_id: str) -> "OwnerRef":
        return cls(OwnerKind.TENANT, tenant_id)

    @classmethod
    def user(cls, user_id: str) -> "OwnerRef":
        return cls(OwnerKind.USER, user_id)

    @classmethod
    def role(cls, role_id: str) -> "OwnerRef":
        return cls(OwnerKind.ROLE, role_id)

    @classmethod
    def resource(cls, resource_id: str) -> "OwnerRef":
        return cls(OwnerKind.RESOURCE, resource_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Property:
    """A named value attached to an owner, unique per (owner, name)."""

    owner: OwnerRef
    name: str
    value: PropertyValue = None
    hidden: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def is_visible(self, include_hidden: bool) -> bool:
        return include_hidden or not self.hidden


@dataclass(frozen=True)
class PropertyInput:
    """Property supplied at creation time or via a set call."""

    name: str
    value: PropertyValue = None
    hidden: bool = False
