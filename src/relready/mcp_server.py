"""MCP server for relready.

Exposes the release prep checklist and readiness scoring as MCP tools so
agents can work a release to done. Reads and writes the same
``.relready/prep-checklist.json`` as the CLI and the dashboard.

Usage:
    relready-mcp                              # Auto-discover .relready/ from cwd
    relready-mcp --project /path/to/project   # Explicit project root
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from relready.core import RELREADY_DIR_NAME, find_relready_root, read_config, utcnow
from relready.events import TicketEvent, parse_events
from relready.grouping import DEFAULT_FIELDS, VALID_GROUP_MODES, FieldMap
from relready.prep_items import PrepItemStore, ToggleOutcome
from relready.report import build_readiness_report

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

server = Server("relready")
store: PrepItemStore | None = None
_fields: FieldMap = DEFAULT_FIELDS
_logger: logging.Logger | None = None


def _get_store() -> PrepItemStore:
    if store is None:
        msg = "Prep checklist not initialized"
        raise RuntimeError(msg)
    return store


def _text(content: Any) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _not_found(item_id: str) -> list[TextContent]:
    return _text({"error": f"Prep item not found: {item_id}", "code": "not_found"})


def _snapshot(checklist: PrepItemStore) -> dict[str, Any]:
    return {
        "pending_confirmation": checklist.pending_confirmation,
        "persist_error": checklist.persist_error,
        "prep_completed": checklist.completed_count,
        "prep_total": len(checklist.items),
    }


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_ITEM_ID_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"id": {"type": "string", "description": "Prep item ID (e.g. release-notes)"}},
    "required": ["id"],
}


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="list_prep_items",
            description="List the release prep checklist with completion and at-risk flags.",
            inputSchema={
                "type": "object",
                "properties": {
                    "at_risk_only": {"type": "boolean", "default": False, "description": "Only items at risk"},
                },
            },
        ),
        Tool(
            name="toggle_prep_item",
            description=(
                "Toggle completion of a prep item. Automated items run their check first; "
                "when the check cannot confirm, the item is left pending manual confirmation "
                "unless confirm=true."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Prep item ID"},
                    "confirm": {
                        "type": "boolean",
                        "default": False,
                        "description": "Mark complete manually when the toggle needs confirmation",
                    },
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="confirm_prep_item",
            description="Mark a prep item complete without running its automated check.",
            inputSchema=_ITEM_ID_SCHEMA,
        ),
        Tool(
            name="toggle_prep_at_risk",
            description="Flip the manual at-risk flag of a prep item.",
            inputSchema=_ITEM_ID_SCHEMA,
        ),
        Tool(
            name="review_at_risk",
            description="Re-evaluate deadline-driven at-risk flags. Returns the ids that changed.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_readiness",
            description="Group open tickets by team, service or epic and compute the release readiness score.",
            inputSchema={
                "type": "object",
                "properties": {
                    "events": {"type": "array", "items": {"type": "object"}, "description": "Activity events"},
                    "release": {"type": "object", "description": "Release event to scope tickets to"},
                    "group_by": {
                        "type": "string",
                        "enum": sorted(VALID_GROUP_MODES),
                        "default": "team",
                    },
                },
                "required": ["events"],
            },
        ),
    ]


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    checklist = _get_store()
    t0 = time.monotonic()

    try:
        result = await _dispatch(name, arguments, checklist)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            _logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
        return result


async def _dispatch(name: str, arguments: dict[str, Any], checklist: PrepItemStore) -> list[TextContent]:
    match name:
        case "list_prep_items":
            at_risk_only = bool(arguments.get("at_risk_only", False))
            items = [i.to_dict() for i in checklist.items if i.at_risk or not at_risk_only]
            return _text({"items": items, **_snapshot(checklist)})

        case "toggle_prep_item":
            item_id = arguments["id"]
            try:
                outcome = await checklist.toggle_complete(item_id)
            except KeyError:
                return _not_found(item_id)
            if outcome is ToggleOutcome.NEEDS_CONFIRMATION:
                if arguments.get("confirm"):
                    checklist.confirm_manual(item_id)
                    outcome_label = "confirmed"
                else:
                    outcome_label = str(outcome)
            else:
                outcome_label = str(outcome)
            return _text({"outcome": outcome_label, "item": checklist.get(item_id).to_dict(), **_snapshot(checklist)})

        case "confirm_prep_item":
            item_id = arguments["id"]
            try:
                item = checklist.confirm_manual(item_id)
            except KeyError:
                return _not_found(item_id)
            return _text({"item": item.to_dict(), **_snapshot(checklist)})

        case "toggle_prep_at_risk":
            item_id = arguments["id"]
            try:
                item = checklist.toggle_at_risk(item_id)
            except KeyError:
                return _not_found(item_id)
            return _text({"item": item.to_dict(), **_snapshot(checklist)})

        case "review_at_risk":
            return _text({"changed": checklist.review_at_risk(), **_snapshot(checklist)})

        case "get_readiness":
            raw_events = arguments.get("events", [])
            if not isinstance(raw_events, list):
                return _text({"error": "events must be a list", "code": "validation_error"})
            group_by = arguments.get("group_by", "team")
            if not isinstance(group_by, str) or group_by not in VALID_GROUP_MODES:
                return _text(
                    {
                        "error": f"Invalid group_by: {group_by!r}. Must be one of {', '.join(sorted(VALID_GROUP_MODES))}",
                        "code": "validation_error",
                    }
                )
            raw_release = arguments.get("release")
            if raw_release is not None and not isinstance(raw_release, dict):
                return _text({"error": "release must be an object", "code": "validation_error"})
            report = build_readiness_report(
                checklist.items,
                parse_events(raw_events),
                now=utcnow(),
                release=TicketEvent.from_dict(raw_release) if raw_release else None,
                group_by=group_by,  # type: ignore[arg-type]
                fields_map=_fields,
            )
            return _text(report)

        case _:
            return _text({"error": f"Unknown tool: {name}", "code": "unknown_tool"})


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(project_path: Path | None) -> None:
    global store, _fields, _logger

    if project_path:
        relready_dir = project_path / RELREADY_DIR_NAME
        if not relready_dir.is_dir():
            print(f"Error: {relready_dir} not found. Run 'relready init' first.", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            relready_dir = find_relready_root()
        except FileNotFoundError:
            print(f"Error: No {RELREADY_DIR_NAME}/ found. Run 'relready init' first.", file=sys.stderr)
            sys.exit(1)

    from relready.logging import setup_logging
    from relready.project import field_map, open_store

    _logger = setup_logging(relready_dir)
    store = open_store(relready_dir)
    _fields = field_map(read_config(relready_dir))
    _logger.info("mcp_server_start", extra={"tool": "server", "args_data": {"project": str(relready_dir.parent)}})

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="relready MCP server")
    parser.add_argument("--project", type=Path, default=None, help="Project root (auto-discovers .relready/ if omitted)")
    args = parser.parse_args()

    asyncio.run(_run(args.project))


if __name__ == "__main__":
    main()
