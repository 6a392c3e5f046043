"""
Settings for the tracker.

Values are read from ``TRACKER_*`` environment variables or a ``.env`` file
and may be changed while the tracker runs; assignments are validated.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NOTIFICATION_TITLE = "Wilderness Event Tracker"


class TrackerSettings(BaseSettings):
    """
    User-facing and runtime settings.

    The notification core only observes these values; it never writes them.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # --- Occurrence selection ---
    special_only: bool = False

    # --- Notifications ---
    notify_enabled: bool = False
    notify_start_enabled: bool = False
    notify_start_lead_seconds: int = Field(default=30, ge=0)
    tooltip_enabled: bool = False
    notification_title: str = DEFAULT_NOTIFICATION_TITLE

    # --- Timers (seconds) ---
    tick_interval: float = Field(default=1.0, gt=0)
    tooltip_poll_interval: float = Field(default=1.0, gt=0)

    # --- Data & logging ---
    catalog_path: Path | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Path | None = None

    def any_notifications(self) -> bool:
        return self.notify_enabled or self.notify_start_enabled


# Singleton instance for application use
tracker_settings = TrackerSettings()
