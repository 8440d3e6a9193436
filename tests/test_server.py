"""Tests for the MCP tool functions.

These build a mock FastMCP context around real operation objects backed
by a mocked API client, and check the JSON each tool returns.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from ticktick_cli.errors import ApiRequestFailed, NoConfigFound
from ticktick_cli.ids import IdResolver
from ticktick_cli.projects import ProjectOperations
from ticktick_cli.tasks import TaskOperations

PROJECTS = [
    {"id": "inbox123456789", "name": "Inbox"},
    {"id": "work5678abcdef", "name": "Work"},
]
TASKS = {
    "work5678abcdef": [
        {"id": "task0001aaaa", "title": "Urgent thing", "priority": 5, "projectId": "work5678abcdef"},
        {"id": "task0002bbbb", "title": "Meh", "priority": 1, "projectId": "work5678abcdef"},
    ],
}


def _make_mock_ctx(api=None, error=None):
    """Build a mock FastMCP context holding an app with real operations."""
    if api is None:
        api = MagicMock()
        api.get_projects = AsyncMock(return_value=PROJECTS)
        api.get_project_tasks = AsyncMock(side_effect=lambda pid: TASKS.get(pid, []))
        api.create_task = AsyncMock(side_effect=lambda body: {"id": "new00000task", **body})
    app = None
    if error is None:
        resolver = IdResolver(api)
        app = MagicMock()
        app.projects = ProjectOperations(api, resolver)
        app.tasks = TaskOperations(api, resolver)
    ctx = MagicMock()
    ctx.request_context.lifespan_context = {"ticktick": app, "ticktick_error": error}
    return ctx, api


@pytest.mark.asyncio
async def test_projects_list_tool():
    from ticktick_cli.server import ticktick_projects_list

    ctx, _ = _make_mock_ctx()
    result = json.loads(await ticktick_projects_list.fn(ctx))
    assert [p["name"] for p in result] == ["Inbox", "Work"]
    assert result[1]["id"] == "work5678"


@pytest.mark.asyncio
async def test_tasks_priority_tool():
    from ticktick_cli.server import ticktick_tasks_priority

    ctx, _ = _make_mock_ctx()
    result = json.loads(await ticktick_tasks_priority.fn(ctx))
    assert result["count"] == 1
    assert result["tasks"][0]["title"] == "Urgent thing"
    assert result["tasks"][0]["projectName"] == "Work"


@pytest.mark.asyncio
async def test_tasks_create_tool_defaults_to_inbox():
    from ticktick_cli.models import CreateTaskInput
    from ticktick_cli.server import ticktick_tasks_create

    ctx, api = _make_mock_ctx()
    result = json.loads(await ticktick_tasks_create.fn(CreateTaskInput(title="Buy milk", priority="medium"), ctx))
    assert result["success"] is True
    api.create_task.assert_awaited_once_with(
        {"title": "Buy milk", "projectId": "inbox123456789", "priority": 3}
    )


@pytest.mark.asyncio
async def test_validation_error_is_returned_as_text():
    from ticktick_cli.models import CreateTaskInput
    from ticktick_cli.server import ticktick_tasks_create

    ctx, api = _make_mock_ctx()
    result = await ticktick_tasks_create.fn(CreateTaskInput(title="x", reminder="tomorrow"), ctx)
    assert result.startswith("Error: Invalid reminder")
    api.create_task.assert_not_called()


@pytest.mark.asyncio
async def test_api_404_is_explained():
    from ticktick_cli.models import GetProjectInput
    from ticktick_cli.server import ticktick_projects_get

    api = MagicMock()
    api.get_project_with_data = AsyncMock(side_effect=ApiRequestFailed(404, "not found"))
    ctx, _ = _make_mock_ctx(api)
    result = await ticktick_projects_get.fn(GetProjectInput(project_id="abcdef1234567890"), ctx)
    assert result.startswith("Error: Resource not found")


@pytest.mark.asyncio
async def test_startup_error_is_reported_by_tools():
    from ticktick_cli.server import ticktick_projects_list

    ctx, _ = _make_mock_ctx(error=NoConfigFound("No config found. Run 'ticktick setup'"))
    result = await ticktick_projects_list.fn(ctx)
    assert result == "Error: No config found. Run 'ticktick setup'"


@pytest.mark.asyncio
async def test_auth_status_works_without_config(tmp_path, monkeypatch):
    from ticktick_cli import server

    monkeypatch.setattr(server, "TOKEN_PATH", tmp_path / "tokens.json")
    ctx, _ = _make_mock_ctx(error=NoConfigFound("missing"))
    result = json.loads(await server.ticktick_auth_status.fn(ctx))
    assert result["authenticated"] is False


@pytest.mark.asyncio
async def test_lifespan_survives_missing_config(monkeypatch):
    from ticktick_cli import server

    def no_config():
        raise NoConfigFound("missing")

    monkeypatch.setattr(server, "build_app", no_config)
    async with server.app_lifespan(server.mcp) as state:
        assert state["ticktick"] is None
        assert isinstance(state["ticktick_error"], NoConfigFound)


@pytest.mark.asyncio
async def test_lifespan_closes_app(monkeypatch):
    from ticktick_cli import server

    app = MagicMock()
    app.aclose = AsyncMock()
    monkeypatch.setattr(server, "build_app", lambda: app)
    async with server.app_lifespan(server.mcp) as state:
        assert state["ticktick"] is app
    app.aclose.assert_awaited_once()
