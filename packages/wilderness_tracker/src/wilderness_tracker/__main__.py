"""
Command line entry point.

Run with:
    python -m wilderness_tracker events.json --notify --notify-start 30
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import sys
from pathlib import Path

from .catalog import CatalogError, load_catalog
from .clock import utc_now
from .config import TrackerSettings
from .countdown import relative_time
from .logging import setup_logging
from .tracker import EventTracker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wilderness_tracker",
        description="Track the hourly event rotation and notify before each start.",
    )
    parser.add_argument("catalog", type=Path, nargs="?", help="Catalog JSON file")
    parser.add_argument(
        "--special-only", action="store_true", help="Only track Special events"
    )
    parser.add_argument(
        "--notify", action="store_true", help="Notify five minutes before start"
    )
    parser.add_argument(
        "--notify-start",
        type=int,
        metavar="SECONDS",
        help="Also notify this many seconds before start",
    )
    parser.add_argument(
        "--once", action="store_true", help="Print the next event and exit"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> TrackerSettings:
    overrides: dict = {}
    if args.catalog is not None:
        overrides["catalog_path"] = args.catalog
    if args.special_only:
        overrides["special_only"] = True
    if args.notify:
        overrides["notify_enabled"] = True
    if args.notify_start is not None:
        overrides["notify_start_enabled"] = True
        overrides["notify_start_lead_seconds"] = args.notify_start
    return TrackerSettings(**overrides)


async def run(tracker: EventTracker) -> None:
    await tracker.start()
    try:
        await asyncio.Event().wait()
    finally:
        await tracker.shutdown()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    setup_logging(settings.log_level, settings.log_file)

    if settings.catalog_path is None:
        sys.stderr.write("No catalog given (argument or TRACKER_CATALOG_PATH)\n")
        return 2
    try:
        catalog = load_catalog(settings.catalog_path)
    except CatalogError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    tracker = EventTracker(catalog, settings)
    if args.once:
        now = utc_now()
        occurrence = tracker.refresh(now)
        when = relative_time(occurrence.start_time, now)
        print(f"{occurrence.name} ({occurrence.location}) {when}")
        return 0

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(tracker))
    return 0


if __name__ == "__main__":
    sys.exit(main())
