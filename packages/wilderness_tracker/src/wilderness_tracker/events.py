"""Event definitions and listener interfaces."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schemas import Notification, Occurrence

logger = logging.getLogger(__name__)


class TrackerEvent(Enum):
    """Types of events emitted by the tracker."""

    STARTUP = "STARTUP"
    SHUTDOWN = "SHUTDOWN"

    OCCURRENCE_CHANGED = "OCCURRENCE_CHANGED"
    NOTIFICATION_SENT = "NOTIFICATION_SENT"

    TOOLTIP_SHOWN = "TOOLTIP_SHOWN"
    TOOLTIP_HIDDEN = "TOOLTIP_HIDDEN"


@dataclass(frozen=True)
class Event:
    """
    Something that happened to the tracker.

    Attributes:
        type: The category of the event.
        timestamp: The instant the tracker was evaluating when it happened.
        occurrence: The occurrence current at that instant (optional).
        notification: The notification that was sent (optional).
        remaining_ms: Milliseconds from ``timestamp`` until ``occurrence``
            starts; None when no occurrence is attached.
    """

    type: TrackerEvent
    timestamp: datetime
    occurrence: Occurrence | None = None
    notification: Notification | None = None
    remaining_ms: int | None = None

    @classmethod
    def for_occurrence(
        cls,
        event_type: TrackerEvent,
        timestamp: datetime,
        occurrence: Occurrence | None,
        notification: Notification | None = None,
    ) -> Event:
        """Build an event, measuring the time left until ``occurrence``."""
        remaining_ms = None
        if occurrence is not None:
            remaining_ms = int(
                (occurrence.start_time - timestamp).total_seconds() * 1000,
            )
        return cls(
            type=event_type,
            timestamp=timestamp,
            occurrence=occurrence,
            notification=notification,
            remaining_ms=remaining_ms,
        )


class EventListener(ABC):
    """
    Interface for receiving tracker events.
    """

    @abstractmethod
    async def on_event(self, event: Event) -> None:
        """Handle an incoming event asynchronously."""
        ...


class EventManager:
    """
    Listener registry for tracker events.

    Countdown callbacks run synchronously inside a tick, so events raised
    there are queued with ``queue`` and delivered in order by ``flush`` once
    the tick has finished. A failing listener never stops the tracker.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []
        self._pending: list[Event] = []

    @property
    def pending(self) -> tuple[Event, ...]:
        return tuple(self._pending)

    def add_listener(self, listener: EventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def queue(self, event: Event) -> None:
        """Hold ``event`` until the next ``flush``."""
        self._pending.append(event)

    async def flush(self) -> int:
        """
        Deliver queued events in the order they were raised.

        Returns:
            How many events were delivered.
        """
        pending, self._pending = self._pending, []
        for event in pending:
            await self.dispatch(event)
        return len(pending)

    async def dispatch(self, event: Event) -> None:
        """
        Deliver one event to all listeners concurrently.

        Exceptions in listeners are logged but suppressed.
        """
        if not self._listeners:
            return

        logger.debug(
            "Dispatching %s to %d listener(s)",
            event.type.value,
            len(self._listeners),
        )
        await asyncio.gather(
            *(self._deliver(listener, event) for listener in self._listeners),
        )

    async def _deliver(self, listener: EventListener, event: Event) -> None:
        try:
            await listener.on_event(event)
        except Exception:
            logger.exception(
                "Error in event listener %s handling %s",
                listener,
                event.type.value,
            )
