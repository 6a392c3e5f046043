from .catalog import Catalog, CatalogError, EmptyCatalogError, load_catalog
from .config import TrackerSettings, tracker_settings
from .countdown import Countdown, CountdownAction, relative_time
from .events import Event, EventListener, EventManager, TrackerEvent
from .notifications import (
    FiveMinuteWarning,
    LeadTimeWarning,
    NotificationTrigger,
    NotificationTriggerSet,
    TriggerState,
)
from .resolver import ANCHOR, OccurrenceResolver, resolve
from .schemas import SPECIAL_TAG, Notification, Occurrence, OccurrenceTemplate
from .sinks import NotificationSink, OverlayProbe, TooltipSink
from .tracker import EventTracker

__all__ = [
    "ANCHOR",
    "SPECIAL_TAG",
    "Catalog",
    "CatalogError",
    "Countdown",
    "CountdownAction",
    "EmptyCatalogError",
    "Event",
    "EventListener",
    "EventManager",
    "EventTracker",
    "FiveMinuteWarning",
    "LeadTimeWarning",
    "Notification",
    "NotificationSink",
    "NotificationTrigger",
    "NotificationTriggerSet",
    "Occurrence",
    "OccurrenceResolver",
    "OccurrenceTemplate",
    "OverlayProbe",
    "TooltipSink",
    "TrackerEvent",
    "TrackerSettings",
    "TriggerState",
    "load_catalog",
    "relative_time",
    "resolve",
    "tracker_settings",
]
