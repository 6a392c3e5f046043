"""
Main tracker entry point.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, Callable, Final

from .clock import utc_now
from .config import TrackerSettings
from .countdown import Countdown
from .events import Event, EventManager, TrackerEvent
from .logging import format_trace, scoped_occurrence_trace
from .notifications import NotificationTriggerSet
from .resolver import OccurrenceResolver
from .sinks import LoggingNotificationSink

if TYPE_CHECKING:
    from datetime import datetime

    from .catalog import Catalog
    from .schemas import Notification, Occurrence
    from .sinks import NotificationSink, OverlayProbe, TooltipSink

logger = logging.getLogger(__name__)

ERROR_BACKOFF_INTERVAL: Final[float] = 5.0


class EventTracker:
    """
    Tracks the next occurrence and fires its notifications on a one-second tick.

    The tracker owns the current occurrence, its notification triggers and
    the countdown to its start. When the countdown reaches zero, or when
    ``special_only`` changes, the next occurrence is resolved and every
    trigger is re-armed.

    Examples:
        >>> import asyncio
        >>> from wilderness_tracker import EventTracker, load_catalog
        >>>
        >>> tracker = EventTracker(load_catalog("events.json"))
        >>>
        >>> async def main():
        ...     await tracker.start()
        ...     await asyncio.sleep(3)
        ...     await tracker.shutdown()
        >>>
        >>> asyncio.run(main())
    """

    def __init__(
        self,
        catalog: Catalog,
        settings: TrackerSettings | None = None,
        notifier: NotificationSink | None = None,
        tooltip: TooltipSink | None = None,
        overlay: OverlayProbe | None = None,
        event_manager: EventManager | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize the tracker with optional collaborators.

        Args:
            catalog: The cyclic occurrence catalog.
            settings: Live settings. Defaults to environment-derived settings.
            notifier: Push-notification sink. Defaults to LoggingNotificationSink.
            tooltip: Overlay tooltip sink.
            overlay: Overlay state probe.
            event_manager: Event dispatcher. Defaults to EventManager.
            clock: Source of "now".
        """
        self.resolver = OccurrenceResolver(catalog)
        self.settings = settings or TrackerSettings()
        self.events = event_manager or EventManager()

        self._clock = clock
        self._tick_time: datetime | None = None
        self.triggers = NotificationTriggerSet(
            self.settings,
            notifier or LoggingNotificationSink(),
            tooltip=tooltip,
            overlay=overlay,
            on_fire=self._on_notification,
            clock=self._current_time,
        )
        self.countdown: Countdown | None = None

        self._observed_special = self.settings.special_only

        self._running = False
        self._main_task: asyncio.Task[None] | None = None
        self._tooltip_task: asyncio.Task[None] | None = None
        self._wakeup = asyncio.Event()

    @property
    def occurrence(self) -> Occurrence | None:
        return self.triggers.occurrence

    def refresh(self, now: datetime | None = None, rearm: bool = False) -> Occurrence:
        """
        Resolve the next occurrence and restart the countdown to it.

        Triggers are re-armed when the occurrence changes, or always when
        ``rearm`` is set.
        """
        now = now or self._clock()
        occurrence = self.resolver.resolve(now, self.settings.special_only)

        changed = self.triggers.bind(occurrence)
        if rearm and not changed:
            self.triggers.reset()

        self.countdown = Countdown(
            final_date=occurrence.start_time,
            actions=self.triggers.actions(),
            on_finish=self._on_countdown_finished,
        )

        if changed:
            logger.info(
                "Next occurrence: %s at %s",
                occurrence.name,
                occurrence.start_time.isoformat(),
            )
            self.events.queue(
                Event.for_occurrence(TrackerEvent.OCCURRENCE_CHANGED, now, occurrence),
            )
        return occurrence

    async def tick(self, now: datetime | None = None) -> int:
        """
        Evaluate one timer tick.

        Sequence:
        1. Applies settings changes observed since the last tick
        2. Runs the countdown (fires due triggers, re-resolves at zero)
        3. Starts tooltip polling if a tooltip became active
        4. Dispatches queued events

        Returns:
            Remaining milliseconds until the occurrence evaluated this tick.
        """
        now = now or self._clock()
        self._tick_time = now

        if self.countdown is None:
            self.refresh(now)
        self._sync_settings(now)

        countdown = self.countdown
        if countdown is None:
            msg = "Countdown was not started by refresh"
            raise RuntimeError(msg)
        with scoped_occurrence_trace(self._trace()):
            remaining = countdown.tick(now)

        self._ensure_tooltip_poll()
        await self.events.flush()
        return remaining

    async def update_settings(self, **changes: Any) -> None:
        """
        Apply live settings changes.

        Raises:
            pydantic.ValidationError: If a value is invalid; nothing after
                the invalid field is applied.
        """
        for field, value in changes.items():
            setattr(self.settings, field, value)

        if self.countdown is not None:
            self._sync_settings(self._clock())
        self._wakeup.set()
        await self.events.flush()

    async def start(self) -> None:
        """
        Start tracking.

        Resolves the first occurrence, emits STARTUP and creates the main
        loop task. Calling start() on a running tracker does nothing.
        """
        if self._running:
            return

        self._running = True
        now = self._clock()
        self.refresh(now)

        await self.events.dispatch(Event(type=TrackerEvent.STARTUP, timestamp=now))
        await self.events.flush()

        self._main_task = asyncio.create_task(self._run_loop())

    async def shutdown(self) -> None:
        """
        Stop tracking.

        Cancels the main loop and any tooltip polling, hides an active
        tooltip and emits SHUTDOWN.
        """
        if not self._running:
            return

        self._running = False
        self._wakeup.set()

        for task in (self._main_task, self._tooltip_task):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._main_task = None
        self._tooltip_task = None

        self.triggers.clear_tooltip()

        await self.events.dispatch(
            Event(type=TrackerEvent.SHUTDOWN, timestamp=self._clock()),
        )

    async def _run_loop(self) -> None:
        """
        Main loop running while the tracker is active.

        Ticks once per ``tick_interval``, or sooner when woken by a settings
        change. Errors back off for ERROR_BACKOFF_INTERVAL seconds.
        """
        while self._running:
            try:
                await self.tick()
                interval = self.settings.tick_interval
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.exception("Tracker loop error", exc_info=exc)
                interval = ERROR_BACKOFF_INTERVAL

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            finally:
                self._wakeup.clear()

    async def _tooltip_loop(self) -> None:
        """Poll the overlay until the active tooltip has been dismissed."""
        while self.triggers.tooltip_active:
            await asyncio.sleep(self.settings.tooltip_poll_interval)
            if self.triggers.poll_tooltip():
                await self.events.dispatch(
                    Event.for_occurrence(
                        TrackerEvent.TOOLTIP_HIDDEN,
                        self._clock(),
                        self.occurrence,
                    ),
                )

    def _ensure_tooltip_poll(self) -> None:
        if not self._running or not self.triggers.tooltip_active:
            return
        if self._tooltip_task is not None and not self._tooltip_task.done():
            return
        self._tooltip_task = asyncio.create_task(self._tooltip_loop())

    def _sync_settings(self, now: datetime) -> None:
        if self.settings.special_only != self._observed_special:
            self._observed_special = self.settings.special_only
            logger.info("special_only changed to %s", self._observed_special)
            self.refresh(now, rearm=True)
        self.triggers.sync_settings()

    def _current_time(self) -> datetime:
        """The instant being evaluated, or the clock outside a tick."""
        return self._tick_time or self._clock()

    def _on_countdown_finished(self) -> None:
        self.refresh(self._tick_time)

    def _on_notification(self, notification: Notification) -> None:
        event_types = [TrackerEvent.NOTIFICATION_SENT]
        if notification.tooltip_shown:
            event_types.append(TrackerEvent.TOOLTIP_SHOWN)
        for event_type in event_types:
            self.events.queue(
                Event.for_occurrence(
                    event_type,
                    notification.sent_at,
                    self.occurrence,
                    notification=notification,
                ),
            )

    def _trace(self) -> str | None:
        occurrence = self.occurrence
        if occurrence is None:
            return None
        return format_trace(occurrence.id, occurrence.start_time.strftime("%H:%M"))
