"""
Occurrence resolution.

Maps wall-clock time onto the cyclic catalog. Resolution is a pure
function of its inputs: no I/O, no clock reads, no side effects, so the
same inputs always produce the same occurrence.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Final

from .schemas import SPECIAL_TAG, Occurrence

if TYPE_CHECKING:
    from .catalog import Catalog

# Start of the rotation: catalog entry 0 began at this instant.
ANCHOR: Final[datetime] = datetime(2024, 2, 5, 6, 0, 0, tzinfo=timezone.utc)

HOUR: Final[timedelta] = timedelta(hours=1)

# Forward nudge so the index computation lands strictly past an hour boundary.
ROLLOVER_NUDGE: Final[timedelta] = timedelta(seconds=1)


def _normalize(now: datetime) -> datetime:
    if now.tzinfo is None:
        msg = "now must be timezone-aware"
        raise ValueError(msg)
    return now.astimezone(timezone.utc).replace(microsecond=0)


def elapsed_hours(moment: datetime) -> int:
    """Whole hours between the anchor and ``moment`` (floored)."""
    return (moment - ANCHOR) // HOUR


def cyclic_index(moment: datetime, size: int) -> int:
    """Position in a catalog of ``size`` entries that is current at ``moment``."""
    return elapsed_hours(moment) % size


def resolve(now: datetime, special_only: bool, catalog: Catalog) -> Occurrence:
    """
    Resolve the next occurrence and its start time.

    With ``special_only`` the search scans forward from the current index to
    the end of the catalog for an entry tagged "Special" and falls back to the
    current entry when there is none. The scan never wraps past the end.

    Examples:
        >>> now = datetime(2024, 2, 5, 9, 30, tzinfo=timezone.utc)
        >>> occurrence = resolve(now, False, catalog)  # doctest: +SKIP
        >>> occurrence.start_time  # doctest: +SKIP
        datetime.datetime(2024, 2, 5, 10, 0, tzinfo=datetime.timezone.utc)

    Args:
        now: Current instant. Must be timezone-aware.
        special_only: Restrict the search to "Special" entries.
        catalog: The cyclic catalog.

    Returns:
        A new Occurrence whose start_time is strictly after ``now``.

    Raises:
        ValueError: If ``now`` is timezone-naive.
    """
    moment = _normalize(now) + ROLLOVER_NUDGE
    idx = cyclic_index(moment, len(catalog))

    selected = catalog[idx]
    if special_only:
        selected = catalog.first_tagged(SPECIAL_TAG, idx) or selected

    start_time = moment + timedelta(
        hours=selected.id - idx,
        minutes=59 - moment.minute,
        seconds=60 - moment.second,
    )
    return Occurrence.from_template(selected, start_time)


class OccurrenceResolver:
    """
    Resolver bound to a single catalog.

    Examples:
        >>> resolver = OccurrenceResolver(catalog)  # doctest: +SKIP
        >>> resolver.resolve(datetime.now(timezone.utc), special_only=True)  # doctest: +SKIP
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def resolve(self, now: datetime, special_only: bool = False) -> Occurrence:
        return resolve(now, special_only, self.catalog)

    def __repr__(self) -> str:
        return f"OccurrenceResolver(catalog={self.catalog!r})"
