"""Cross-project query helpers for search, due and priority views.

These functions operate on Task records and plain result rows.
They are pure functions (no I/O) for easy testing.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from ticktick_cli.models import Task, TaskPriority, format_priority

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_COMPACT_OFFSET = re.compile(r"([+-])(\d{2})(\d{2})$")
_FRACTION = re.compile(r"\.\d+")


def parse_date(date_str: str | None) -> datetime | None:
    """Parse a TickTick date string to an aware datetime. None if unparseable."""
    if not date_str:
        return None
    try:
        # TickTick uses format like "2026-02-13T09:00:00+0000"
        # Also handles "2026-02-13T09:00:00.000+0000", "...Z" and "2026-02-13"
        cleaned = date_str.strip()
        if _DATE_ONLY.match(cleaned):
            return datetime.fromisoformat(cleaned).replace(tzinfo=timezone.utc)
        cleaned = _FRACTION.sub("", cleaned)
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        cleaned = _COMPACT_OFFSET.sub(r"\1\2:\3", cleaned)
        parsed = datetime.fromisoformat(cleaned)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def matches_search(
    task: Task,
    keyword: str | None = None,
    tags: list[str] | None = None,
    priority: str | None = None,
) -> bool:
    """Keyword (title or content), any-tag and exact-priority filters, ANDed."""
    if keyword:
        q = keyword.lower()
        if q not in task.title.lower() and q not in task.content.lower():
            return False
    if tags and not set(tags) & set(task.tags):
        return False
    if priority and format_priority(task.priority) != priority.lower():
        return False
    return True


def is_due_within(task: Task, cutoff: datetime) -> bool:
    """Active task with a due date on or before ``cutoff``. Overdue counts."""
    if task.is_completed:
        return False
    due = parse_date(task.due_date)
    return due is not None and due <= cutoff


def is_high_priority(task: Task) -> bool:
    return task.priority == TaskPriority.HIGH.value and not task.is_completed


def sort_by_due_date(rows: list[dict]) -> list[dict]:
    """Sort result rows by dueDate ascending; unparseable dates last."""
    far_future = datetime.max.replace(tzinfo=timezone.utc)

    def sort_key(row):
        return parse_date(row.get("dueDate")) or far_future

    return sorted(rows, key=sort_key)
