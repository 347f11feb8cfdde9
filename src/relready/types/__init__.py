# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, prep_items.py, or any other relready module.
"""Typed return-value contracts for relready core and API layers."""

from __future__ import annotations

from relready.types.core import (
    ISOTimestamp,
    PersistedPrepItem,
    PrepItemDict,
    ProjectConfig,
)
from relready.types.scoring import (
    ReadinessBandDict,
    ReadinessReport,
    TicketGroupDict,
)

__all__ = [
    "ISOTimestamp",
    "PersistedPrepItem",
    "PrepItemDict",
    "ProjectConfig",
    "ReadinessBandDict",
    "ReadinessReport",
    "TicketGroupDict",
]
