"""TickTick MCP Server — the CLI's operations as MCP tools.

Every tool returns the same JSON document the CLI prints with
``--format json``. Project and task IDs may be full or short (first 8
characters); short IDs are resolved against live listings.

Usage:
    ticktick-mcp                 # stdio transport (default)
    python -m ticktick_cli       # same
    MCP_TRANSPORT=streamable-http ticktick-mcp
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from dotenv import load_dotenv
from fastmcp import Context, FastMCP

from ticktick_cli import __version__
from ticktick_cli.app import TickTickApp, build_app
from ticktick_cli.auth import AuthOperations
from ticktick_cli.config import TOKEN_PATH
from ticktick_cli.errors import ApiRequestFailed, TickTickError
from ticktick_cli.formatting import format_json, truncate_response
from ticktick_cli.models import (
    CompleteTaskInput,
    CreateProjectInput,
    CreateTaskInput,
    DeleteProjectInput,
    DeleteTaskInput,
    DueTasksInput,
    GetProjectInput,
    GetTaskInput,
    ListTasksInput,
    SearchTasksInput,
    UpdateTaskInput,
)
from ticktick_cli.tokens import FileTokenStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: one app (HTTP client, token manager, resolver) per server
# ---------------------------------------------------------------------------

@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Build the app at startup, close its HTTP client on shutdown.

    A missing or invalid config does not stop the server; tools report
    the error when called.
    """
    app = None
    startup_error = None
    try:
        app = build_app()
    except TickTickError as e:
        logger.warning("TickTick client unavailable: %s", e)
        startup_error = e

    try:
        yield {"ticktick": app, "ticktick_error": startup_error}
    finally:
        if app is not None:
            await app.aclose()


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "ticktick",
    instructions=(
        "TickTick task and project management. Use ticktick_projects_list to "
        "discover project IDs; IDs may be passed in full or as their first 8 "
        "characters. An empty project ID means the inbox. Search, due and "
        "priority tools scan every project. Run `ticktick auth login` in a "
        "terminal if tools report that you are not authenticated."
    ),
    lifespan=app_lifespan,
)


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------

def _handle_error(e: Exception) -> str:
    """Convert exceptions to LLM-friendly error messages."""
    if isinstance(e, ApiRequestFailed):
        if e.status_code == 401:
            return (
                "Error: Authentication failed. The stored TickTick token was rejected. "
                "Run `ticktick auth login` and `ticktick auth exchange CODE`."
            )
        if e.status_code == 403:
            return "Error: Permission denied. Check your OAuth scopes include 'tasks:write'."
        if e.status_code == 404:
            return (
                "Error: Resource not found. Check the project and task IDs. "
                "Use ticktick_projects_list to find valid project IDs."
            )
        return f"Error: TickTick API returned status {e.status_code}: {e.body}"
    if isinstance(e, TickTickError):
        return f"Error: {e}"
    logger.exception("Unexpected error in tool call")
    return f"Error: {type(e).__name__}: {e}"


def _get_app(ctx) -> TickTickApp:
    """Extract the app from request context. Raises the startup error if any."""
    lifespan = ctx.request_context.lifespan_context
    app = lifespan.get("ticktick")
    if app is None:
        raise lifespan.get("ticktick_error") or TickTickError("TickTick client is not configured")
    return app


def _respond(result) -> str:
    return truncate_response(format_json(result))


_READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True, "openWorldHint": True}


# ===================================================================
# AUTH TOOLS
# ===================================================================


@mcp.tool(
    name="ticktick_auth_status",
    annotations={"title": "TickTick Auth Status", **_READ_ONLY},
)
async def ticktick_auth_status(ctx: Context) -> str:
    """Check TickTick authentication status.

    Reports whether a token is stored, whether it has expired, and when
    it expires. Works even when client credentials are not configured.
    """
    try:
        app = ctx.request_context.lifespan_context.get("ticktick")
        auth = app.auth if app is not None else AuthOperations(None, FileTokenStore(TOKEN_PATH), TOKEN_PATH)
        return _respond(auth.status())
    except Exception as e:
        return _handle_error(e)


# ===================================================================
# PROJECT TOOLS
# ===================================================================


@mcp.tool(
    name="ticktick_projects_list",
    annotations={"title": "List TickTick Projects", **_READ_ONLY},
)
async def ticktick_projects_list(ctx: Context) -> str:
    """List all TickTick projects.

    Returns short and full IDs, names, colors and view modes. Use this
    first to discover project IDs needed by other tools.
    """
    try:
        return _respond(await _get_app(ctx).projects.list())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_projects_get",
    annotations={"title": "Get TickTick Project with Tasks", **_READ_ONLY},
)
async def ticktick_projects_get(params: GetProjectInput, ctx: Context) -> str:
    """Get a TickTick project with its tasks.

    Args:
        params: Contains project_id (full or short).
    """
    try:
        return _respond(await _get_app(ctx).projects.get(params.project_id))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_projects_create",
    annotations={
        "title": "Create TickTick Project",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def ticktick_projects_create(params: CreateProjectInput, ctx: Context) -> str:
    """Create a new TickTick project.

    Args:
        params: Contains name (required), plus optional color, view_mode, kind.

    Examples:
        - "Create a project called Groceries" -> name="Groceries"
        - "Make a kanban board for Sprint 3" -> name="Sprint 3", view_mode="kanban"
    """
    try:
        result = await _get_app(ctx).projects.create(
            params.name,
            color=params.color,
            view_mode=params.view_mode.value if params.view_mode else None,
            kind=params.kind.value if params.kind else None,
        )
        return _respond(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_projects_delete",
    annotations={
        "title": "Delete TickTick Project",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def ticktick_projects_delete(params: DeleteProjectInput, ctx: Context) -> str:
    """Permanently delete a TickTick project and all its tasks.

    WARNING: This is irreversible.
    """
    try:
        return _respond(await _get_app(ctx).projects.delete(params.project_id))
    except Exception as e:
        return _handle_error(e)


# ===================================================================
# TASK TOOLS
# ===================================================================


@mcp.tool(
    name="ticktick_tasks_list",
    annotations={"title": "List TickTick Tasks", **_READ_ONLY},
)
async def ticktick_tasks_list(params: ListTasksInput, ctx: Context) -> str:
    """List tasks in a TickTick project (empty project_id means the inbox)."""
    try:
        return _respond(await _get_app(ctx).tasks.list(params.project_id))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_get",
    annotations={"title": "Get TickTick Task", **_READ_ONLY},
)
async def ticktick_tasks_get(params: GetTaskInput, ctx: Context) -> str:
    """Get details of a specific TickTick task.

    Args:
        params: Contains project_id and task_id (either may be short).
    """
    try:
        return _respond(await _get_app(ctx).tasks.get(params.project_id, params.task_id))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_create",
    annotations={
        "title": "Create TickTick Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def ticktick_tasks_create(params: CreateTaskInput, ctx: Context) -> str:
    """Create a new task in TickTick.

    Omit project_id to create the task in the inbox.

    Examples:
        - "Add 'Buy milk' to my inbox" -> title="Buy milk"
        - "High-priority task due tomorrow, remind me an hour before"
          -> title=..., priority="high", due_date="2026-03-15", reminder="1h"
    """
    try:
        result = await _get_app(ctx).tasks.create(
            params.project_id,
            params.title,
            content=params.content,
            due_date=params.due_date,
            priority=params.priority,
            tags=params.tags,
            reminder=params.reminder,
        )
        return _respond(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_update",
    annotations={
        "title": "Update TickTick Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def ticktick_tasks_update(params: UpdateTaskInput, ctx: Context) -> str:
    """Update an existing TickTick task.

    Only the fields you provide will be changed.
    """
    try:
        result = await _get_app(ctx).tasks.update(
            params.task_id,
            project_id=params.project_id,
            title=params.title,
            content=params.content,
            due_date=params.due_date,
            priority=params.priority,
            tags=params.tags,
            reminder=params.reminder,
        )
        return _respond(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_complete",
    annotations={
        "title": "Complete TickTick Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def ticktick_tasks_complete(params: CompleteTaskInput, ctx: Context) -> str:
    """Mark a TickTick task as complete."""
    try:
        return _respond(await _get_app(ctx).tasks.complete(params.project_id, params.task_id))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_delete",
    annotations={
        "title": "Delete TickTick Task",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def ticktick_tasks_delete(params: DeleteTaskInput, ctx: Context) -> str:
    """Permanently delete a TickTick task.

    WARNING: This is irreversible.
    """
    try:
        return _respond(await _get_app(ctx).tasks.delete(params.project_id, params.task_id))
    except Exception as e:
        return _handle_error(e)


# ===================================================================
# CROSS-PROJECT QUERY TOOLS
# ===================================================================


@mcp.tool(
    name="ticktick_tasks_search",
    annotations={"title": "Search TickTick Tasks", **_READ_ONLY},
)
async def ticktick_tasks_search(params: SearchTasksInput, ctx: Context) -> str:
    """Search for tasks across all TickTick projects.

    Keyword matches title or content (case-insensitive); tags match any
    tag; priority must match exactly. Given filters are combined.
    """
    try:
        result = await _get_app(ctx).tasks.search(
            params.keyword, tags=params.tags, priority=params.priority
        )
        return _respond(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_due",
    annotations={"title": "TickTick Tasks Due Soon", **_READ_ONLY},
)
async def ticktick_tasks_due(params: DueTasksInput, ctx: Context) -> str:
    """Get active tasks due within N days, overdue tasks included, soonest first."""
    try:
        return _respond(await _get_app(ctx).tasks.due(params.days))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="ticktick_tasks_priority",
    annotations={"title": "High Priority TickTick Tasks", **_READ_ONLY},
)
async def ticktick_tasks_priority(ctx: Context) -> str:
    """Get active high-priority tasks across all projects."""
    try:
        return _respond(await _get_app(ctx).tasks.priority())
    except Exception as e:
        return _handle_error(e)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    load_dotenv()
    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=os.environ.get("TICKTICK_LOG_LEVEL", "INFO").upper(),
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting ticktick MCP server %s", __version__)

    transport = os.environ.get("MCP_TRANSPORT", "stdio")
    if transport == "stdio":
        mcp.run(transport="stdio")
    else:
        port = int(os.environ.get("PORT", "8000"))
        mcp.run(transport=transport, host="0.0.0.0", port=port)
