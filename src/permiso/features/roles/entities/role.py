"""Role domain entity: a named bundle of permissions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ....utils.timezone import utc_now
from ...properties.entities import Property


@dataclass(frozen=True)
class Role:
    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    properties: List[Property] = field(default_factory=list)
