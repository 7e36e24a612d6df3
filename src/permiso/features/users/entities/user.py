"""User domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ....utils.timezone import utc_now
from ...properties.entities import Property


@dataclass(frozen=True)
class User:
    """User within a tenant.

    (identity_provider, identity_provider_user_id) is a secondary lookup key;
    the engine does not require it to be unique.
    """

    id: str
    tenant_id: str
    identity_provider: Optional[str] = None
    identity_provider_user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    properties: List[Property] = field(default_factory=list)


@dataclass(frozen=True)
class UserRole:
    """Membership edge between a user and a role."""

    tenant_id: str
    user_id: str
    role_id: str
    created_at: datetime = field(default_factory=utc_now)
