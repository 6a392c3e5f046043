"""
Notification triggers.

Each trigger is edge-triggered: it moves from armed to fired the first time
its condition holds and stays fired until it is reset, either because the
occurrence changed or because the settings it depends on changed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Final, Iterable

from .clock import utc_now
from .countdown import CountdownAction, relative_time
from .schemas import Notification

if TYPE_CHECKING:
    from datetime import datetime

    from .config import TrackerSettings
    from .schemas import Occurrence
    from .sinks import NotificationSink, OverlayProbe, TooltipSink

logger = logging.getLogger(__name__)

FIVE_MINUTES_MS: Final[int] = 300_000


@dataclass
class TriggerState:
    """Per-occurrence state of one trigger."""

    fired: bool = False

    @property
    def armed(self) -> bool:
        return not self.fired

    def reset(self) -> None:
        self.fired = False


class NotificationTrigger(ABC):
    """
    Abstract base class for notification triggers.

    Subclasses decide when to fire from the remaining time and the live
    settings, and declare which settings values re-arm them on change.
    """

    name: ClassVar[str]

    def __init__(self) -> None:
        self.state = TriggerState()

    @abstractmethod
    def should_fire(self, remaining_ms: int, settings: TrackerSettings) -> bool: ...

    @abstractmethod
    def config_key(self, settings: TrackerSettings) -> tuple[Any, ...]: ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(fired={self.state.fired})"


class FiveMinuteWarning(NotificationTrigger):
    """
    Fires once when the occurrence is five minutes or less away.

    When the lead-time warning is also enabled, this trigger stays silent
    inside the lead-time window so the two never alert for the same moment.
    """

    name = "five_minute_warning"

    def should_fire(self, remaining_ms: int, settings: TrackerSettings) -> bool:
        if not settings.notify_enabled or self.state.fired:
            return False
        if remaining_ms > FIVE_MINUTES_MS:
            return False
        if settings.notify_start_enabled:
            return remaining_ms > settings.notify_start_lead_seconds * 1000
        return True

    def config_key(self, settings: TrackerSettings) -> tuple[Any, ...]:
        return (settings.notify_enabled,)


class LeadTimeWarning(NotificationTrigger):
    """Fires once when the occurrence is within the user's lead time."""

    name = "lead_time_warning"

    def should_fire(self, remaining_ms: int, settings: TrackerSettings) -> bool:
        return (
            settings.notify_start_enabled
            and not self.state.fired
            and remaining_ms <= settings.notify_start_lead_seconds * 1000
        )

    def config_key(self, settings: TrackerSettings) -> tuple[Any, ...]:
        return (settings.notify_start_enabled, settings.notify_start_lead_seconds)


class NotificationTriggerSet:
    """
    Owns the triggers for the current occurrence and performs their side effects.

    Examples:
        >>> triggers = NotificationTriggerSet(settings, LoggingNotificationSink())
        >>> triggers.bind(occurrence)
        >>> countdown = Countdown(occurrence.start_time, triggers.actions())

    Args:
        settings: Live settings, observed and never modified.
        notifier: Push-notification sink.
        tooltip: Overlay tooltip sink (optional).
        overlay: Overlay state probe (optional). Without it no tooltip is shown.
        on_fire: Called with a Notification record after every firing.
        triggers: Triggers to manage. Defaults to the five-minute and
                  lead-time warnings.
        clock: Source of "now" for the message's relative time.
    """

    def __init__(
        self,
        settings: TrackerSettings,
        notifier: NotificationSink,
        tooltip: TooltipSink | None = None,
        overlay: OverlayProbe | None = None,
        on_fire: Callable[[Notification], None] | None = None,
        triggers: Iterable[NotificationTrigger] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.notifier = notifier
        self.tooltip = tooltip
        self.overlay = overlay
        self.on_fire = on_fire
        self.triggers: list[NotificationTrigger] = (
            list(triggers)
            if triggers is not None
            else [FiveMinuteWarning(), LeadTimeWarning()]
        )
        self._clock = clock

        self.occurrence: Occurrence | None = None
        self.tooltip_active = False
        self._observed = {t.name: t.config_key(settings) for t in self.triggers}

    def get(self, name: str) -> NotificationTrigger:
        for trigger in self.triggers:
            if trigger.name == name:
                return trigger
        raise KeyError(name)

    def fired(self) -> dict[str, bool]:
        return {t.name: t.state.fired for t in self.triggers}

    def bind(self, occurrence: Occurrence) -> bool:
        """
        Install the occurrence the triggers count down to.

        Returns:
            True if the occurrence changed and the triggers were re-armed.
        """
        if occurrence == self.occurrence:
            return False
        self.occurrence = occurrence
        self.reset()
        return True

    def reset(self, name: str | None = None) -> None:
        """Re-arm one trigger, or all of them when ``name`` is None."""
        for trigger in self.triggers:
            if name is None or trigger.name == name:
                trigger.state.reset()

    def sync_settings(self) -> list[str]:
        """
        Re-arm every trigger whose own settings changed since the last sync.

        Returns:
            Names of the triggers that were re-armed.
        """
        rearmed = []
        for trigger in self.triggers:
            key = trigger.config_key(self.settings)
            if key != self._observed[trigger.name]:
                self._observed[trigger.name] = key
                trigger.state.reset()
                rearmed.append(trigger.name)
        if rearmed:
            logger.debug("Settings changed, re-armed %s", ", ".join(rearmed))
        return rearmed

    def actions(self) -> list[CountdownAction]:
        """Countdown actions, one per trigger, in trigger order."""
        return [self._action_for(trigger) for trigger in self.triggers]

    def evaluate(self, remaining_ms: int) -> list[str]:
        """
        Run every trigger once against ``remaining_ms``.

        Returns:
            Names of the triggers that fired.
        """
        fired = []
        for trigger in self.triggers:
            if trigger.should_fire(remaining_ms, self.settings):
                self.fire(trigger)
                fired.append(trigger.name)
        return fired

    def fire(self, trigger: NotificationTrigger) -> Notification:
        """
        Send the notification for ``trigger`` and mark it fired.

        Sink failures are logged and swallowed; the trigger is marked fired
        regardless so a broken sink cannot cause repeated attempts.

        Raises:
            RuntimeError: If no occurrence is bound.
        """
        occurrence = self.occurrence
        if occurrence is None:
            msg = "No occurrence bound to the trigger set"
            raise RuntimeError(msg)

        now = self._clock()
        title = self.settings.notification_title
        message = (
            f"{occurrence.name} event is starting "
            f"{relative_time(occurrence.start_time, now)}!"
        )
        try:
            self.notifier.notify(title, message)
        except Exception:
            logger.exception("Notification sink failed for %s", trigger.name)

        tooltip_shown = self._show_tooltip(f"{occurrence.name} is about to start")
        trigger.state.fired = True
        logger.info("%s fired for %s", trigger.name, occurrence.name)

        notification = Notification(
            trigger=trigger.name,
            title=title,
            message=message,
            occurrence_id=occurrence.id,
            sent_at=now,
            tooltip_shown=tooltip_shown,
        )
        if self.on_fire is not None:
            self.on_fire(notification)
        return notification

    def poll_tooltip(self) -> bool:
        """
        Hide the active tooltip once the overlay has focus.

        Returns:
            True if the tooltip was hidden by this poll.
        """
        if not self.tooltip_active:
            return False
        if self._probe("is_overlay_focused") is not True:
            return False
        self.clear_tooltip()
        return True

    def clear_tooltip(self) -> None:
        """Leave the tooltip-active sub-state, hiding the tooltip if shown."""
        if not self.tooltip_active:
            return
        self.tooltip_active = False
        if self.tooltip is None:
            return
        try:
            self.tooltip.hide_tooltip()
        except Exception:
            logger.exception("Tooltip sink failed to hide tooltip")

    def _action_for(self, trigger: NotificationTrigger) -> CountdownAction:
        return CountdownAction(
            condition=lambda remaining: trigger.should_fire(remaining, self.settings),
            callback=lambda: self.fire(trigger),
        )

    def _show_tooltip(self, text: str) -> bool:
        if not self.settings.tooltip_enabled or self.tooltip is None:
            return False
        if self._probe("is_overlay_visible") is not True:
            return False
        if self._probe("is_overlay_focused") is not False:
            return False
        try:
            self.tooltip.show_tooltip(text)
        except Exception:
            logger.exception("Tooltip sink failed to show tooltip")
            return False
        self.tooltip_active = True
        return True

    def _probe(self, method: str) -> bool | None:
        """Query the overlay; None when there is no probe or it fails."""
        if self.overlay is None:
            return None
        try:
            return getattr(self.overlay, method)()
        except Exception:
            logger.warning("Overlay probe %s unavailable", method, exc_info=True)
            return None
