"""Timezone utilities for permiso.

All timestamps the stores write are UTC-aware.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC datetime with timezone awareness."""
    return datetime.now(timezone.utc)

