import logging
from datetime import datetime, timedelta, timezone

import pytest
from wilderness_tracker.catalog import Catalog
from wilderness_tracker.config import TrackerSettings
from wilderness_tracker.schemas import Occurrence, OccurrenceTemplate
from wilderness_tracker.sinks import NotificationSink, OverlayProbe, TooltipSink

# 2024-02-05 09:30 UTC is three hours after the rotation anchor.
NOW = datetime(2024, 2, 5, 9, 30, 0, tzinfo=timezone.utc)

EVENT_NAMES = [
    "Spider Swarm",
    "Unnatural Outcrop",
    "Demon Stragglers",
    "Butterfly Swarm",
    "Forgotten Soldiers",
    "King Black Dragon Rampage",
    "Surprising Seedlings",
    "Hellhound Pack",
]


def make_catalog(special_ids=(5,), size=8) -> Catalog:
    """Catalog of ``size`` entries; ids in ``special_ids`` carry the Special tag."""
    return Catalog(
        [
            OccurrenceTemplate(
                id=i,
                name=EVENT_NAMES[i % len(EVENT_NAMES)],
                location=f"Location {i}",
                tags=("Special", "Combat") if i in special_ids else ("Skilling",),
                wiki_url=f"https://wiki.example/event_{i}",
            )
            for i in range(size)
        ]
    )


class FixedClock:
    """Controllable clock for deterministic tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotificationSink(NotificationSink):
    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def notify(self, title: str, message: str) -> None:
        self.calls.append((title, message))


class FailingNotificationSink(NotificationSink):
    def notify(self, title: str, message: str) -> None:
        raise OSError("Notification service unavailable")


class RecordingTooltipSink(TooltipSink):
    def __init__(self):
        self.shown: list[str] = []
        self.hidden = 0

    def show_tooltip(self, text: str) -> None:
        self.shown.append(text)

    def hide_tooltip(self) -> None:
        self.hidden += 1


class FakeOverlayProbe(OverlayProbe):
    def __init__(self, visible: bool | None = True, focused: bool | None = False):
        self.visible = visible
        self.focused = focused

    def is_overlay_visible(self) -> bool | None:
        return self.visible

    def is_overlay_focused(self) -> bool | None:
        return self.focused


class BrokenOverlayProbe(OverlayProbe):
    def is_overlay_visible(self) -> bool | None:
        raise RuntimeError("permission denied")

    def is_overlay_focused(self) -> bool | None:
        raise RuntimeError("permission denied")


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def settings():
    return TrackerSettings(_env_file=None)


@pytest.fixture
def notifier():
    return RecordingNotificationSink()


@pytest.fixture
def tooltip():
    return RecordingTooltipSink()


@pytest.fixture
def overlay():
    return FakeOverlayProbe()


@pytest.fixture
def occurrence(now):
    """Spider Swarm starting five minutes after NOW."""
    return Occurrence(
        id=0,
        name="Spider Swarm",
        location="Bandit Camp",
        tags=("Skilling",),
        wiki_url="https://wiki.example/spider_swarm",
        start_time=now + timedelta(minutes=5),
    )


@pytest.fixture(autouse=True)
def restore_package_logger():
    """setup_logging() reconfigures the package logger; undo it after each test."""
    logger = logging.getLogger("wilderness_tracker")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def catalog_factory():
    return make_catalog


@pytest.fixture
def failing_notifier():
    return FailingNotificationSink()


@pytest.fixture
def broken_overlay():
    return BrokenOverlayProbe()
