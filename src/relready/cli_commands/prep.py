"""CLI commands for the prep checklist: list, toggle, confirm, at-risk, review."""

from __future__ import annotations

import asyncio
import json as json_mod
import sys

import click

from relready.cli_common import get_store
from relready.core import PrepItem
from relready.prep_items import PrepItemStore, ToggleOutcome


def _format_item(item: PrepItem) -> str:
    mark = "x" if item.completed else " "
    flags = []
    if item.at_risk:
        flags.append("AT RISK" + (" (manual)" if item.manual_at_risk else ""))
    if item.resolver_type == "automated" and item.automated_check is not None:
        flags.append(item.automated_check.kind)
    due = f" due {item.deadline:%Y-%m-%d %H:%M}" if item.deadline else ""
    suffix = f"  [{', '.join(flags)}]" if flags else ""
    return f"[{mark}] {item.id:<16} {item.label}{due}{suffix}"


def _get_or_exit(store: PrepItemStore, item_id: str, as_json: bool) -> PrepItem:
    try:
        return store.get(item_id)
    except KeyError:
        if as_json:
            click.echo(json_mod.dumps({"error": f"Not found: {item_id}"}))
        else:
            click.echo(f"Not found: {item_id}", err=True)
        sys.exit(1)


@click.group()
def prep() -> None:
    """Release prep checklist."""


@prep.command("list")
@click.option("--at-risk", "at_risk_only", is_flag=True, help="Only items at risk")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_items(at_risk_only: bool, as_json: bool) -> None:
    """Show the prep checklist."""
    store = get_store()
    items = [i for i in store.items if i.at_risk or not at_risk_only]
    if as_json:
        click.echo(json_mod.dumps([i.to_dict() for i in items], indent=2, default=str))
        return
    for item in items:
        click.echo(_format_item(item))
    click.echo(f"\n{store.completed_count}/{len(store.items)} complete")


@prep.command()
@click.argument("item_id")
@click.option("--yes", "-y", is_flag=True, help="Confirm manually without prompting when a check cannot complete the item")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def toggle(item_id: str, yes: bool, as_json: bool) -> None:
    """Toggle completion. Automated items run their check first."""
    store = get_store()
    _get_or_exit(store, item_id, as_json)
    outcome = asyncio.run(store.toggle_complete(item_id))

    if outcome is ToggleOutcome.NEEDS_CONFIRMATION:
        item = store.get(item_id)
        prompt = (
            f"Automated check could not confirm '{item.label}'. Mark it complete manually?"
            if item.resolver_type == "automated"
            else f"Mark '{item.label}' complete?"
        )
        if yes or (not as_json and click.confirm(prompt, default=False)):
            store.confirm_manual(item_id)
            outcome_label = "confirmed"
        else:
            store.cancel_confirmation()
            outcome_label = str(outcome)
    else:
        outcome_label = str(outcome)

    item = store.get(item_id)
    if as_json:
        click.echo(json_mod.dumps({"outcome": outcome_label, "item": item.to_dict()}, indent=2, default=str))
        return
    click.echo(f"{outcome_label}: {_format_item(item)}")


@prep.command()
@click.argument("item_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def confirm(item_id: str, as_json: bool) -> None:
    """Mark an item complete without running its check."""
    store = get_store()
    _get_or_exit(store, item_id, as_json)
    item = store.confirm_manual(item_id)
    if as_json:
        click.echo(json_mod.dumps(item.to_dict(), indent=2, default=str))
        return
    click.echo(_format_item(item))


@prep.command("at-risk")
@click.argument("item_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def at_risk(item_id: str, as_json: bool) -> None:
    """Flip the manual at-risk flag of an item."""
    store = get_store()
    _get_or_exit(store, item_id, as_json)
    item = store.toggle_at_risk(item_id)
    if as_json:
        click.echo(json_mod.dumps(item.to_dict(), indent=2, default=str))
        return
    click.echo(_format_item(item))


@prep.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def review(as_json: bool) -> None:
    """Re-evaluate deadline-driven at-risk flags now."""
    store = get_store()
    changed = store.review_at_risk()
    if as_json:
        click.echo(json_mod.dumps({"changed": changed}))
        return
    if not changed:
        click.echo("No changes")
        return
    for item_id in changed:
        click.echo(_format_item(store.get(item_id)))


def register(cli: click.Group) -> None:
    """Register prep checklist commands with the CLI group."""
    cli.add_command(prep)
