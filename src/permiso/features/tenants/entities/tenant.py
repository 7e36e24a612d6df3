"""Tenant domain entity.

A tenant is the root of isolation; every other entity belongs to exactly one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ....utils.timezone import utc_now
from ...properties.entities import Property


@dataclass(frozen=True)
class Tenant:
    """Tenant record. ``id`` is assigned by the caller."""

    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    properties: List[Property] = field(default_factory=list)
