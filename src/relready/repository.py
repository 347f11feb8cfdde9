"""Persistence for the prep checklist.

The checklist is one record: a JSON array with one entry per item holding
only the mutable fields (``id``, ``completed``, ``manualAtRisk``,
``deadline``). Every save replaces the whole record; there is no merge, so
two writers racing on save end with the later write winning.

Repositories know nothing about the catalog. ``load()`` hands back whatever
was parsed (or ``None``) and the store decides what to keep.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from relready.core import CHECKLIST_FILENAME, PrepItem, write_atomic
from relready.types.core import PersistedPrepItem

logger = logging.getLogger(__name__)


class PrepItemRepository(Protocol):
    """Backing store for the persisted checklist record."""

    def load(self) -> Any | None:
        """Return the parsed record, or None if absent or unreadable."""
        ...

    def save(self, records: list[PersistedPrepItem]) -> None:
        """Replace the stored record. May raise OSError/TypeError/ValueError."""
        ...


def serialize_items(items: list[PrepItem]) -> list[PersistedPrepItem]:
    """Project items onto the persisted shape. Catalog text is never stored."""
    records: list[PersistedPrepItem] = []
    for item in items:
        record = PersistedPrepItem(id=item.id, completed=item.completed, manualAtRisk=item.manual_at_risk)
        if item.deadline is not None:
            record["deadline"] = item.deadline.isoformat()  # type: ignore[typeddict-item]
        records.append(record)
    return records


class JsonFileRepository:
    """Stores the checklist as ``.relready/prep-checklist.json``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def for_project(cls, relready_dir: Path) -> JsonFileRepository:
        return cls(relready_dir / CHECKLIST_FILENAME)

    def load(self) -> Any | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Unreadable checklist record %s, using catalog defaults: %s", self.path, exc)
            return None

    def save(self, records: list[PersistedPrepItem]) -> None:
        write_atomic(self.path, json.dumps(records, indent=2) + "\n")


class MemoryRepository:
    """In-process repository; holds the record as a JSON string.

    Round-tripping through JSON keeps its behaviour identical to the file
    repository, including serialization failures.
    """

    def __init__(self, raw: str | None = None) -> None:
        self.raw = raw
        self.saves = 0

    def load(self) -> Any | None:
        if self.raw is None:
            return None
        try:
            return json.loads(self.raw)
        except json.JSONDecodeError:
            logger.warning("Unreadable in-memory checklist record, using catalog defaults")
            return None

    def save(self, records: list[PersistedPrepItem]) -> None:
        self.raw = json.dumps(records)
        self.saves += 1
