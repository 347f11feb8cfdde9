"""Shared CLI helpers.

Provides ``get_store()`` so that ``cli.py`` and the ``cli_commands/*.py``
modules can reach the project's prep checklist without circular imports.
"""

from __future__ import annotations

import sys

import click

from relready.core import RELREADY_DIR_NAME, find_relready_root
from relready.logging import setup_logging
from relready.prep_items import Notification, PrepItemStore
from relready.project import open_store


def echo_notification(note: Notification) -> None:
    prefix = "Warning: " if note.level == "warning" else ""
    click.echo(f"{prefix}{note.title}: {note.description}", err=True)


def get_store() -> PrepItemStore:
    """Discover .relready/ and return its loaded prep-item store."""
    try:
        relready_dir = find_relready_root()
    except FileNotFoundError:
        click.echo(f"No {RELREADY_DIR_NAME}/ found. Run 'relready init' first.", err=True)
        sys.exit(1)
    setup_logging(relready_dir)
    return open_store(relready_dir, notify=echo_notification)
