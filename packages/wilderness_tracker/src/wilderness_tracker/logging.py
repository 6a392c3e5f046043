import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional, Union

# Context-local trace of the occurrence being evaluated
occurrence_trace: ContextVar[Optional[str]] = ContextVar(
    "occurrence_trace", default=None
)


class TraceFormatter(logging.Formatter):
    """
    Formatter that injects the occurrence trace and enforces UTC.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        super().__init__(fmt, datefmt)
        # Occurrence start times are UTC; keep log timestamps comparable
        self.converter = time.gmtime

    def formatTime(self, record, datefmt=None):
        """Overridden to ensure strict ISO-8601 UTC format."""
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        t = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%03dZ" % (t, record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        trace = occurrence_trace.get()
        record.trace_str = f"[{trace}] " if trace else ""
        return super().format(record)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 5_242_880,  # 5MB
    backup_count: int = 3,
    capture_roots: bool = False,
    module_name: str = "wilderness_tracker",
) -> None:
    """
    Global logging configuration.

    Args:
        level: Logging level (INFO, DEBUG, etc.)
        log_file: Path to write logs to.
        capture_roots: If True, configures the root logger.
                       If False, only configures 'wilderness_tracker.*' loggers.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target_logger = (
        logging.getLogger() if capture_roots else logging.getLogger(module_name)
    )

    # Allows reconfiguration during tests
    target_logger.handlers.clear()
    target_logger.setLevel(level)

    # %(trace_str)s is injected by TraceFormatter
    log_format = "%(asctime)s %(levelname)-8s %(trace_str)s%(name)s: %(message)s"
    formatter = TraceFormatter(log_format)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    target_logger.addHandler(console)

    if log_file:
        file_path = Path(log_file).resolve()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            target_logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"Failed to setup log file: {e}\n")

    if not capture_roots:
        target_logger.propagate = False


def format_trace(occurrence_id: int, start_hhmm: str) -> str:
    """
    >>> format_trace(5, "14:00")
    'occ-5@14:00'
    """
    return f"occ-{occurrence_id}@{start_hhmm}"


def set_occurrence_trace(value: str) -> Token:
    return occurrence_trace.set(value)


def reset_occurrence_trace(token: Token) -> None:
    occurrence_trace.reset(token)


@contextmanager
def scoped_occurrence_trace(value: str) -> Generator[None, None, None]:
    """
    Context manager for auto-cleaning occurrence traces.

    >>> with scoped_occurrence_trace("occ-3@07:00"):
    ...     pass
    """
    token = set_occurrence_trace(value)
    try:
        yield
    finally:
        reset_occurrence_trace(token)
