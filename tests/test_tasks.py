"""Tests for task operations and the cross-project views.

The API client is mocked; the ID resolver is real so short-ID handling is
exercised end to end.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ticktick_cli.errors import InvalidPriorityValue, InvalidReminderFormat, ValidationError
from ticktick_cli.ids import IdResolver
from ticktick_cli.tasks import TaskOperations

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

PROJECTS = [
    {"id": "inbox123456789", "name": "Inbox"},
    {"id": "work5678abcdef", "name": "Work"},
    {"id": "home9012abcdef", "name": "Home"},
]

TASKS = {
    "inbox123456789": [
        {"id": "tin00001aaaa", "title": "Call mom", "dueDate": "2026-03-12T09:00:00+0000", "projectId": "inbox123456789"},
        {"id": "tin00002bbbb", "title": "Someday", "projectId": "inbox123456789"},
    ],
    "work5678abcdef": [
        {"id": "twk00001aaaa", "title": "Overdue report", "dueDate": "2026-03-01T09:00:00+0000", "priority": 5, "projectId": "work5678abcdef"},
        {"id": "twk00002bbbb", "title": "Team meeting", "dueDate": "2026-04-30T09:00:00+0000", "priority": 3, "tags": ["work"], "projectId": "work5678abcdef"},
        {"id": "twk00003cccc", "title": "Shipped", "dueDate": "2026-03-05T09:00:00+0000", "priority": 5, "status": 2, "projectId": "work5678abcdef"},
    ],
    "home9012abcdef": [
        {"id": "thm00001aaaa", "title": "Fix sink", "content": "before the Meeting with plumber", "dueDate": "2026-03-16T09:00:00+0000", "priority": 5, "projectId": "home9012abcdef"},
    ],
}


def _make_ops(failing=()):
    async def get_project_tasks(pid):
        if pid in failing:
            raise httpx.ReadTimeout("timed out")
        return TASKS.get(pid, [])

    api = MagicMock()
    api.get_projects = AsyncMock(return_value=PROJECTS)
    api.get_project_tasks = AsyncMock(side_effect=get_project_tasks)
    api.get_task = AsyncMock(side_effect=lambda pid, tid: {"id": tid, "projectId": pid, "title": "Fetched"})
    api.create_task = AsyncMock(side_effect=lambda body: {"id": "new00000task", **body})
    api.update_task = AsyncMock(side_effect=lambda tid, body: {"id": tid, "projectId": "work5678abcdef", "title": "Updated"})
    api.complete_task = AsyncMock(return_value=None)
    api.delete_task = AsyncMock(return_value=None)
    return TaskOperations(api, IdResolver(api), now=lambda: NOW), api


# ── CRUD ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_tasks_in_inbox():
    ops, api = _make_ops()
    rows = await ops.list("")
    api.get_project_tasks.assert_awaited_once_with("inbox123456789")
    assert [r["title"] for r in rows] == ["Call mom", "Someday"]
    assert rows[0]["id"] == "tin00001"


@pytest.mark.asyncio
async def test_get_task_resolves_both_ids():
    ops, api = _make_ops()
    result = await ops.get("work", "twk00002")
    api.get_task.assert_awaited_once_with("work5678abcdef", "twk00002bbbb")
    assert result["fullId"] == "twk00002bbbb"
    assert result["projectId"] == "work5678"


@pytest.mark.asyncio
async def test_create_requires_title_before_any_request():
    ops, api = _make_ops()
    with pytest.raises(ValidationError):
        await ops.create("", "   ")
    api.get_projects.assert_not_called()
    api.create_task.assert_not_called()


@pytest.mark.asyncio
async def test_create_rejects_bad_input_before_any_request():
    ops, api = _make_ops()
    with pytest.raises(InvalidReminderFormat):
        await ops.create("", "Task", reminder="soon")
    with pytest.raises(InvalidPriorityValue):
        await ops.create("", "Task", priority="urgent")
    api.get_projects.assert_not_called()
    api.create_task.assert_not_called()


@pytest.mark.asyncio
async def test_create_omits_absent_fields():
    ops, api = _make_ops()
    result = await ops.create("", "Buy milk")
    api.create_task.assert_awaited_once_with({"title": "Buy milk", "projectId": "inbox123456789"})
    assert result["success"] is True
    assert result["task"]["id"] == "new00000"
    assert result["task"]["priority"] == "none"


@pytest.mark.asyncio
async def test_create_with_all_fields():
    ops, api = _make_ops()
    await ops.create(
        "work",
        "Write report",
        content="Q1 numbers",
        due_date="2026-03-15",
        priority="high",
        tags="work, urgent",
        reminder="1h",
    )
    api.create_task.assert_awaited_once_with(
        {
            "title": "Write report",
            "projectId": "work5678abcdef",
            "content": "Q1 numbers",
            "dueDate": "2026-03-15",
            "priority": 5,
            "tags": ["work", "urgent"],
            "reminders": ["TRIGGER:-PT1H"],
        }
    )


@pytest.mark.asyncio
async def test_update_sends_only_given_fields():
    ops, api = _make_ops()
    result = await ops.update("twk00002", priority="low")
    api.update_task.assert_awaited_once_with("twk00002bbbb", {"id": "twk00002bbbb", "priority": 1})
    assert result["task"]["title"] == "Updated"


@pytest.mark.asyncio
async def test_update_with_project_hint():
    ops, api = _make_ops()
    await ops.update("thm00001", project_id="home", title=" New title ")
    api.update_task.assert_awaited_once_with(
        "thm00001aaaa",
        {"id": "thm00001aaaa", "projectId": "home9012abcdef", "title": "New title"},
    )


@pytest.mark.asyncio
async def test_complete_and_delete():
    ops, api = _make_ops()
    result = await ops.complete("work", "twk00001")
    api.complete_task.assert_awaited_once_with("work5678abcdef", "twk00001aaaa")
    assert result == {"success": True, "message": "Task twk00001 completed"}

    result = await ops.delete("home9012", "thm00001")
    api.delete_task.assert_awaited_once_with("home9012abcdef", "thm00001aaaa")
    assert result == {"success": True, "message": "Task thm00001 deleted"}


# ── Cross-project views ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_due_within_seven_days():
    ops, _ = _make_ops()
    result = await ops.due(7)
    assert result["days"] == 7
    assert [t["title"] for t in result["tasks"]] == ["Overdue report", "Call mom", "Fix sink"]
    assert result["count"] == 3
    assert result["tasks"][0]["projectName"] == "Work"


@pytest.mark.asyncio
async def test_due_zero_days_only_overdue():
    ops, _ = _make_ops()
    result = await ops.due(0)
    assert [t["title"] for t in result["tasks"]] == ["Overdue report"]


@pytest.mark.asyncio
async def test_priority_view():
    ops, _ = _make_ops()
    result = await ops.priority()
    assert result["count"] == 2
    assert [t["title"] for t in result["tasks"]] == ["Overdue report", "Fix sink"]
    assert all(t["priority"] == "high" for t in result["tasks"])


@pytest.mark.asyncio
async def test_search_keyword_in_title_or_content():
    ops, _ = _make_ops()
    result = await ops.search("meeting")
    assert result["keyword"] == "meeting"
    assert [t["title"] for t in result["tasks"]] == ["Team meeting", "Fix sink"]
    assert result["tasks"][1]["content"] == "before the Meeting with plumber"
    assert result["tasks"][0]["status"] == "active"


@pytest.mark.asyncio
async def test_search_by_tags_and_priority():
    ops, _ = _make_ops()
    result = await ops.search(tags="work")
    assert [t["title"] for t in result["tasks"]] == ["Team meeting"]

    result = await ops.search(priority="high")
    assert [t["title"] for t in result["tasks"]] == ["Overdue report", "Shipped", "Fix sink"]


@pytest.mark.asyncio
async def test_scan_skips_failing_project():
    ops, _ = _make_ops(failing={"work5678abcdef"})
    result = await ops.priority()
    assert [t["title"] for t in result["tasks"]] == ["Fix sink"]


@pytest.mark.asyncio
async def test_scan_skips_project_with_garbled_body():
    from ticktick_cli.client import TickTickAPI

    def handler(request):
        path = request.url.path
        if path.endswith("/project"):
            return httpx.Response(200, json=[{"id": "p1", "name": "Broken"}, {"id": "p2", "name": "Work"}])
        if path.endswith("/project/p1/data"):
            return httpx.Response(200, text="<html>bad gateway</html>")
        return httpx.Response(
            200, json={"tasks": [{"id": "t2", "title": "Weekly meeting", "projectId": "p2"}]}
        )

    tokens = MagicMock()
    tokens.get_valid_access_token = AsyncMock(return_value="tok")
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    api = TickTickAPI(tokens, "https://api.ticktick.com/open/v1", http)
    ops = TaskOperations(api, IdResolver(api), now=lambda: NOW)

    result = await ops.search("meeting")
    await http.aclose()

    assert result["count"] == 1
    assert result["tasks"][0]["projectName"] == "Work"
