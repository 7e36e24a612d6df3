"""Resource domain entity.

``id`` is a hierarchical, path-like string such as ``docs/readme``. It is
treated as an opaque string that supports prefix comparison, never parsed
into a tree.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ....utils.timezone import utc_now
from ...properties.entities import Property


@dataclass(frozen=True)
class Resource:
    id: str
    tenant_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    properties: List[Property] = field(default_factory=list)

    def matches_prefix(self, prefix: str) -> bool:
        return self.id.startswith(prefix)
