"""CLI for relready, the release readiness checklist.

Convention-based: discovers .relready/ by walking up from cwd.

Usage:
    relready init                                # Initialize .relready/ in cwd
    relready prep list                           # Show the prep checklist
    relready prep toggle <id>                    # Toggle completion (runs automated checks)
    relready prep confirm <id>                   # Mark complete manually
    relready prep at-risk <id>                   # Flip the manual at-risk flag
    relready prep review                         # Re-evaluate deadline risk
    relready score events.json --group-by=epic   # Grouped tickets + readiness score
    relready dashboard                           # Launch the web dashboard
"""

from __future__ import annotations

from pathlib import Path

import click

from relready import __version__
from relready.cli_commands import prep as prep_commands
from relready.cli_commands import readiness as readiness_commands
from relready.core import (
    CHECKLIST_FILENAME,
    RELREADY_DIR_NAME,
    default_config,
    read_config,
    write_config,
)
from relready.logging import setup_logging
from relready.project import open_store

# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="relready")
def cli() -> None:
    """relready: release readiness checklist and ticket risk."""


@cli.command()
@click.option("--ticket-api", default=None, help="Base URL of the activity/ticket API")
@click.option("--status-api", default=None, help="Base URL of the status-check API")
def init(ticket_api: str | None, status_api: str | None) -> None:
    """Initialize .relready/ in the current directory."""
    cwd = Path.cwd()
    relready_dir = cwd / RELREADY_DIR_NAME

    if relready_dir.exists():
        click.echo(f"{RELREADY_DIR_NAME}/ already exists in {cwd}")
        return

    relready_dir.mkdir()
    config = default_config()
    if ticket_api:
        config["ticket_api_url"] = ticket_api
    if status_api:
        config["status_api_url"] = status_api
    write_config(relready_dir, config)

    setup_logging(relready_dir)
    store = open_store(relready_dir)
    store.save()

    config = read_config(relready_dir)
    click.echo(f"Initialized {RELREADY_DIR_NAME}/ in {cwd}")
    click.echo(f"  Ticket API: {config['ticket_api_url']}")
    click.echo(f"  Status API: {config['status_api_url']}")
    click.echo(f"  Checklist: {relready_dir / CHECKLIST_FILENAME} ({len(store.items)} items)")
    click.echo("\nNext: relready prep list")


@cli.command()
@click.option("--port", default=8378, type=int, help="Port to serve on (default: 8378)")
@click.option("--no-browser", is_flag=True, help="Don't auto-open browser")
def dashboard(port: int, no_browser: bool) -> None:
    """Launch the release detail dashboard."""
    from relready.dashboard import main as dashboard_main

    dashboard_main(port=port, no_browser=no_browser)


prep_commands.register(cli)
readiness_commands.register(cli)


if __name__ == "__main__":
    cli()
