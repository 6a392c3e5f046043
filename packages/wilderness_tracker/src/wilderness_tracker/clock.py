"""Timezone-aware clock utilities.

All instants handled by the tracker are UTC-aware. This module is the single
source of "now" so tests can substitute a fixed clock.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)
