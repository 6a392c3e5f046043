"""The fixed, ordered catalog of occurrence templates."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, overload

from pydantic import TypeAdapter, ValidationError

from .schemas import OccurrenceTemplate

logger = logging.getLogger(__name__)

_TEMPLATES_ADAPTER = TypeAdapter(list[OccurrenceTemplate])


class CatalogError(ValueError):
    """Raised when catalog data cannot be loaded or violates its invariants."""


class EmptyCatalogError(CatalogError):
    """Raised when a catalog is built with no entries."""


class Catalog(Sequence[OccurrenceTemplate]):
    """
    Read-only, finite, ordered sequence of occurrence templates.

    The catalog repeats cyclically over time, one entry per hour. Every
    entry's id must equal its position, and at least one entry is required.

    Examples:
        >>> catalog = Catalog([OccurrenceTemplate(id=0, name="Spider Swarm")])
        >>> len(catalog)
        1
        >>> Catalog([])
        Traceback (most recent call last):
        ...
        wilderness_tracker.catalog.EmptyCatalogError: Catalog must contain at least one entry

    Args:
        templates: Templates in catalog order.

    Raises:
        EmptyCatalogError: If no templates are given.
        CatalogError: If an id does not match its position.
    """

    def __init__(self, templates: Sequence[OccurrenceTemplate]):
        entries = tuple(templates)
        if not entries:
            msg = "Catalog must contain at least one entry"
            raise EmptyCatalogError(msg)
        for position, entry in enumerate(entries):
            if entry.id != position:
                msg = f"Catalog entry '{entry.name}' has id {entry.id}, expected {position}"
                raise CatalogError(msg)
        self._entries = entries

    @overload
    def __getitem__(self, index: int) -> OccurrenceTemplate: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[OccurrenceTemplate]: ...

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Catalog(size={len(self._entries)})"

    def first_tagged(self, tag: str, start: int = 0) -> OccurrenceTemplate | None:
        """First entry carrying ``tag`` at index ``start`` or later. Never wraps."""
        for entry in self._entries[start:]:
            if tag in entry.tags:
                return entry
        return None

    @classmethod
    def from_json(cls, data: str | bytes | list[dict[str, Any]]) -> Catalog:
        """
        Build a catalog from the external JSON record list.

        Args:
            data: Raw JSON text, or an already decoded list of records.

        Raises:
            CatalogError: If the records fail validation.
        """
        try:
            if isinstance(data, (str, bytes)):
                templates = _TEMPLATES_ADAPTER.validate_json(data)
            else:
                templates = _TEMPLATES_ADAPTER.validate_python(data)
        except ValidationError as e:
            msg = f"Invalid catalog data: {e.error_count()} validation error(s)"
            raise CatalogError(msg) from e
        return cls(templates)


def load_catalog(path: str | Path) -> Catalog:
    """
    Load and validate a catalog JSON file.

    Raises:
        CatalogError: If the file cannot be read or its contents are invalid.
    """
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        msg = f"Cannot read catalog file {file_path}: {e}"
        raise CatalogError(msg) from e

    catalog = Catalog.from_json(raw)
    logger.info("Loaded %d catalog entries from %s", len(catalog), file_path)
    return catalog
