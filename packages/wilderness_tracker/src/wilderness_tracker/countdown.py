"""Countdown contract consumed by the host display, plus relative-time phrasing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class CountdownAction:
    """
    A conditional callback evaluated on every countdown tick.

    Attributes:
        condition: Receives the remaining milliseconds; returns True to fire.
        callback: Invoked when ``condition`` holds.
    """

    condition: Callable[[int], bool]
    callback: Callable[[], None]


@dataclass
class Countdown:
    """
    Counts down to ``final_date``, running actions on each tick.

    ``on_finish`` is invoked exactly once, on the first tick where the
    remaining time is zero or less.

    Examples:
        >>> countdown = Countdown(
        ...     final_date=occurrence.start_time,
        ...     actions=[CountdownAction(lambda ms: ms <= 60_000, warn)],
        ...     on_finish=refresh,
        ... )
        >>> countdown.tick(datetime.now(timezone.utc))  # doctest: +SKIP
    """

    final_date: datetime
    actions: list[CountdownAction] = field(default_factory=list)
    on_finish: Callable[[], None] | None = None
    _finished: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.final_date.tzinfo is None:
            msg = "final_date must be timezone-aware"
            raise ValueError(msg)

    @property
    def finished(self) -> bool:
        return self._finished

    def remaining_ms(self, now: datetime) -> int:
        return int((self.final_date - now).total_seconds() * 1000)

    def tick(self, now: datetime) -> int:
        """
        Evaluate one tick.

        Returns:
            Remaining milliseconds at ``now``.
        """
        remaining = self.remaining_ms(now)
        if self._finished:
            return remaining

        for action in self.actions:
            if action.condition(remaining):
                action.callback()

        if remaining <= 0:
            self._finished = True
            if self.on_finish is not None:
                self.on_finish()

        return remaining


# (phrase, upper limit in the unit last measured, unit measured by this row)
_THRESHOLDS: tuple[tuple[str, int | None, str | None], ...] = (
    ("a few seconds", 44, "seconds"),
    ("a minute", 89, None),
    ("{} minutes", 44, "minutes"),
    ("an hour", 89, None),
    ("{} hours", 21, "hours"),
    ("a day", 35, None),
    ("{} days", 25, "days"),
    ("a month", 45, None),
    ("{} months", 10, "months"),
    ("a year", 17, None),
    ("{} years", None, "years"),
)

_SECONDS_PER_UNIT = {"seconds": 1, "minutes": 60, "hours": 3600, "days": 86400}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _months_between(later: datetime, earlier: datetime) -> float:
    delta = relativedelta(later, earlier)
    return delta.years * 12 + delta.months + delta.days / 30


def _measure(unit: str, later: datetime, earlier: datetime) -> float:
    if unit == "months":
        return _months_between(later, earlier)
    if unit == "years":
        return _months_between(later, earlier) / 12
    return (later - earlier).total_seconds() / _SECONDS_PER_UNIT[unit]


def relative_time(target: datetime, now: datetime) -> str:
    """
    Human phrase for ``target`` relative to ``now``.

    Follows the thresholds of the usual "from now" humanizers: "in a few
    seconds", "in 5 minutes", "in an hour", "3 days ago". The difference is
    rounded half up in each row's own unit before it is compared with the
    row's limit, so 150 seconds reads as "in 3 minutes".

    Examples:
        >>> now = datetime(2024, 2, 5, 6, 55, tzinfo=timezone.utc)
        >>> relative_time(now + timedelta(minutes=5), now)  # doctest: +SKIP
        'in 5 minutes'
    """
    future = target > now
    later, earlier = (target, now) if future else (now, target)

    amount = 0
    phrase = ""
    for index, (template, limit, unit) in enumerate(_THRESHOLDS):
        if unit is not None:
            amount = _round_half_up(_measure(unit, later, earlier))
        if limit is None or amount <= limit:
            # A plural row that rounds down to one reads as the singular above it
            if amount <= 1 and index > 0:
                template = _THRESHOLDS[index - 1][0]
            phrase = template.format(amount)
            break

    return f"in {phrase}" if future else f"{phrase} ago"
