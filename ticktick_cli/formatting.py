"""Output formatting for the CLI and MCP tools.

JSON is the default everywhere. The text format is a compact listing
meant for terminals.
"""

from __future__ import annotations

import json
from typing import Any

CHARACTER_LIMIT = 25_000


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

def format_json(data: Any) -> str:
    """Format data as indented JSON string."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Text formatters
# ---------------------------------------------------------------------------

def format_text_list(items: list) -> str:
    """Numbered listing: name, priority and due date, then the short ID."""
    if not items:
        return "(empty)"
    lines = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            lines.append(f"{i}. {item}")
            continue
        name = item.get("name") or item.get("title") or ""
        priority = item.get("priority")
        pri = f" [{priority}]" if priority and priority != "none" else ""
        due = f" (due: {item['dueDate']})" if item.get("dueDate") else ""
        lines.append(f"{i}. {name}{pri}{due}\n   ID: {item.get('id', '')}")
    return "\n".join(lines)


def format_text_object(obj: dict) -> str:
    """``key: value`` lines; nested lists are summarized by length."""
    lines = []
    for key, value in obj.items():
        if value is None:
            continue
        if isinstance(value, list):
            lines.append(f"{key}: {len(value)} items")
        elif isinstance(value, dict):
            lines.append(f"{key}: {json.dumps(value, ensure_ascii=False, default=str)}")
        elif isinstance(value, bool):
            lines.append(f"{key}: {str(value).lower()}")
        else:
            lines.append(f"{key}: {value}")
    return "\n".join(lines)


def format_output(data: Any, fmt: str = "json") -> str:
    if fmt == "json":
        return format_json(data)
    if isinstance(data, list):
        return format_text_list(data)
    if isinstance(data, dict):
        return format_text_object(data)
    return str(data)


# ---------------------------------------------------------------------------
# Truncation
# ---------------------------------------------------------------------------

def truncate_response(response: str) -> str:
    """Truncate response if it exceeds CHARACTER_LIMIT."""
    if len(response) <= CHARACTER_LIMIT:
        return response
    truncated = response[:CHARACTER_LIMIT]
    return (
        truncated
        + "\n\n---\n"
        + f"Response truncated ({len(response):,} chars -> {CHARACTER_LIMIT:,} chars). "
        + "Use filters to reduce results."
    )
