"""Release prep checklist state machine.

``PrepItemStore`` owns the canonical list of prep items. Items come from the
fixed catalog with persisted overrides applied; they are mutated only
through the operations below, and every mutation saves the whole list.

Completing an incomplete item goes through its resolver: automated items
run their check and complete on success; everything else (manual items,
failed or unreachable checks) opens a pending manual confirmation that
``confirm_manual()`` resolves.

All operations run on one event loop. The only suspension point is the
automated check inside ``toggle_complete``; a second toggle of the same
item while a check is outstanding is last-write-wins.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from relready.catalog import default_items
from relready.core import AT_RISK_WINDOW, PrepItem, compute_at_risk, parse_iso, utcnow
from relready.repository import PrepItemRepository, serialize_items
from relready.resolver import ResolverEngine
from relready.scoring import ReadinessBand, combined_readiness_score, readiness_band

logger = logging.getLogger(__name__)


class ToggleOutcome(enum.StrEnum):
    UNCOMPLETED = "uncompleted"
    AUTO_COMPLETED = "auto_completed"
    NEEDS_CONFIRMATION = "needs_confirmation"
    # Check failed, but the item was confirmed by another caller meanwhile.
    ALREADY_COMPLETE = "already_complete"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    level: str = "info"


Notifier = Callable[[Notification], None]


def _log_notification(note: Notification) -> None:
    logger.info("%s: %s", note.title, note.description)


class PrepItemStore:
    """Stateful owner of the prep checklist."""

    def __init__(
        self,
        repository: PrepItemRepository,
        resolver: ResolverEngine,
        *,
        notify: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
        at_risk_window: timedelta = AT_RISK_WINDOW,
        catalog: list[dict[str, Any]] | None = None,
    ) -> None:
        self.repository = repository
        self.resolver = resolver
        self.notify = notify or _log_notification
        self.clock = clock
        self.at_risk_window = at_risk_window
        self._catalog = catalog
        self._items: list[PrepItem] = []
        self._loaded = False
        self.pending_confirmation: str | None = None
        self.persist_error: str | None = None

    # -- loading --

    def load(self) -> list[PrepItem]:
        """Merge persisted overrides onto the catalog and derive ``at_risk``.

        Each persisted field is applied only when it has the right type;
        anything else keeps the catalog default. A record that is not a
        non-empty list is ignored entirely.
        """
        now = self.clock()
        items = default_items(now, self._catalog)
        raw = self.repository.load()
        if isinstance(raw, list) and raw:
            overrides = {entry["id"]: entry for entry in raw if isinstance(entry, dict) and isinstance(entry.get("id"), str)}
            for item in items:
                stored = overrides.get(item.id)
                if stored is not None:
                    _apply_override(item, stored)
        elif raw is not None:
            logger.warning("Ignoring persisted checklist of type %s", type(raw).__name__)

        for item in items:
            item.at_risk = compute_at_risk(item, now, self.at_risk_window)
        self._items = items
        self._loaded = True
        return self.items

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    @property
    def items(self) -> list[PrepItem]:
        self._ensure_loaded()
        return list(self._items)

    def get(self, item_id: str) -> PrepItem:
        """Return the item with *item_id*. Raises ``KeyError``."""
        self._ensure_loaded()
        for item in self._items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    # -- mutations --

    async def toggle_complete(self, item_id: str) -> ToggleOutcome:
        """Flip completion, routing incomplete items through their resolver."""
        item = self.get(item_id)
        if item.completed:
            item.completed = False
            item.at_risk = self._derive_at_risk(item)
            self._persist()
            return ToggleOutcome.UNCOMPLETED

        if item.resolver_type == "automated":
            result = await self.resolver.check(item)
            # Re-read: the list may have been reloaded while the check ran.
            current = self.get(item_id)
            if result.complete:
                _mark_complete(current)
                if self.pending_confirmation == item_id:
                    self.pending_confirmation = None
                self._persist()
                self.notify(Notification("Item Completed", f"{current.label} has been automatically marked as complete."))
                return ToggleOutcome.AUTO_COMPLETED
            logger.info("Automated check for %s did not confirm completion: %s", item_id, result.reason)
            if current.completed:
                return ToggleOutcome.ALREADY_COMPLETE

        self.pending_confirmation = item_id
        return ToggleOutcome.NEEDS_CONFIRMATION

    def confirm_manual(self, item_id: str) -> PrepItem:
        item = self.get(item_id)
        _mark_complete(item)
        if self.pending_confirmation == item_id:
            self.pending_confirmation = None
        self._persist()
        self.notify(Notification("Item Marked Complete", "This item has been manually marked as complete."))
        return item

    def cancel_confirmation(self) -> None:
        self.pending_confirmation = None

    def toggle_at_risk(self, item_id: str) -> PrepItem:
        item = self.get(item_id)
        item.manual_at_risk = not item.manual_at_risk
        item.at_risk = self._derive_at_risk(item)
        self._persist()
        return item

    def review_at_risk(self) -> list[str]:
        """Re-derive ``at_risk`` for every item as time passes.

        ``manual_at_risk`` is left alone. Persists only when a flag changed
        and returns the ids that changed.
        """
        self._ensure_loaded()
        changed: list[str] = []
        for item in self._items:
            at_risk = self._derive_at_risk(item)
            if at_risk != item.at_risk:
                item.at_risk = at_risk
                changed.append(item.id)
        if changed:
            logger.info("At-risk review changed %d item(s): %s", len(changed), ", ".join(changed))
            self._persist()
        return changed

    def save(self) -> None:
        """Write the current list through to the repository."""
        self._ensure_loaded()
        self._persist()

    # -- scoring --

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.completed)

    def readiness(self, open_external_count: int) -> tuple[int, ReadinessBand]:
        items = self.items
        score = combined_readiness_score(open_external_count, self.completed_count, len(items))
        return score, readiness_band(score)

    # -- internals --

    def _derive_at_risk(self, item: PrepItem) -> bool:
        return compute_at_risk(item, self.clock(), self.at_risk_window)

    def _persist(self) -> None:
        """Save the whole list; failures are logged and reported, never raised."""
        try:
            self.repository.save(serialize_items(self._items))
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to persist prep checklist: %s", exc)
            self.persist_error = str(exc)
            self.notify(
                Notification(
                    "Changes Not Saved",
                    "Prep checklist changes could not be saved and will be lost on reload.",
                    level="warning",
                )
            )
        else:
            self.persist_error = None


def _mark_complete(item: PrepItem) -> None:
    item.completed = True
    item.at_risk = False
    item.manual_at_risk = False


def _apply_override(item: PrepItem, stored: dict[str, Any]) -> None:
    completed = stored.get("completed")
    if isinstance(completed, bool):
        item.completed = completed
    manual = stored.get("manualAtRisk")
    if isinstance(manual, bool):
        item.manual_at_risk = manual
    deadline = parse_iso(stored.get("deadline"))
    if deadline is not None:
        item.deadline = deadline
