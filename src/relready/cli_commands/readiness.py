"""CLI command for release readiness scoring."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click

from relready.cli_common import get_store
from relready.core import find_relready_root, read_config, utcnow
from relready.events import TicketEvent, parse_events
from relready.grouping import VALID_GROUP_MODES
from relready.project import field_map
from relready.report import build_readiness_report, render_markdown


def _load_json(path: Path) -> Any:
    try:
        return json_mod.loads(path.read_text(encoding="utf-8"))
    except (OSError, json_mod.JSONDecodeError, UnicodeDecodeError) as exc:
        click.echo(f"Cannot read {path}: {exc}", err=True)
        sys.exit(1)


@click.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--group-by",
    type=click.Choice(sorted(VALID_GROUP_MODES)),
    default="team",
    show_default=True,
    help="Dimension to group open tickets by",
)
@click.option("--release", "release_id", default=None, help="Id of a release event in EVENTS_FILE to scope tickets to")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def score(events_file: Path, group_by: str, release_id: str | None, as_json: bool) -> None:
    """Score release readiness from an activity-events JSON file.

    EVENTS_FILE holds either a list of events or {"events": [...]}.
    """
    data = _load_json(events_file)
    raw = data.get("events", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        click.echo(f"{events_file}: expected a list of events", err=True)
        sys.exit(1)
    events = parse_events(raw)

    release: TicketEvent | None = None
    if release_id is not None:
        release = next((e for e in events if e.id == release_id), None)
        if release is None:
            click.echo(f"Release event not found: {release_id}", err=True)
            sys.exit(1)

    store = get_store()
    fields = field_map(read_config(find_relready_root()))
    report = build_readiness_report(
        store.items,
        events,
        now=utcnow(),
        release=release,
        group_by=group_by,  # type: ignore[arg-type]
        fields_map=fields,
    )
    if as_json:
        click.echo(json_mod.dumps(report, indent=2, default=str))
        return
    click.echo(render_markdown(report, store.items), nl=False)


def register(cli: click.Group) -> None:
    """Register readiness commands with the CLI group."""
    cli.add_command(score)
