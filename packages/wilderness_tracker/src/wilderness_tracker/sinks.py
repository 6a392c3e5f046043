"""Interfaces to the host environment's notification and overlay surfaces."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """
    Interface for pushing a desktop/toast notification.

    Calls are fire-and-forget: the tracker never retries them.

    Examples:
        >>> class PrintSink(NotificationSink):
        ...     def notify(self, title, message):
        ...         print(f"{title}: {message}")
    """

    @abstractmethod
    def notify(self, title: str, message: str) -> None: ...


class TooltipSink(ABC):
    """Interface for the in-game overlay tooltip."""

    @abstractmethod
    def show_tooltip(self, text: str) -> None: ...

    @abstractmethod
    def hide_tooltip(self) -> None: ...


class OverlayProbe(ABC):
    """
    Interface for querying the game overlay surface.

    Either method may return None when the state cannot be determined
    (missing permission, overlay not running). Unknown state suppresses
    tooltips.
    """

    @abstractmethod
    def is_overlay_visible(self) -> bool | None: ...

    @abstractmethod
    def is_overlay_focused(self) -> bool | None: ...


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log. Used when no desktop sink is available."""

    def notify(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)

