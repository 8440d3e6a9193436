"""
TickTick CLI - manage tasks and projects from the terminal.

Usage:
    ticktick setup
    ticktick auth status|login|exchange CODE|refresh|logout
    ticktick projects list|get ID|create NAME [--color HEX] [--view MODE]|delete ID
    ticktick tasks list PROJECT
    ticktick tasks get PROJECT TASK
    ticktick tasks create PROJECT "Title" [--due DATE] [--priority LEVEL] [--tags a,b] [--reminder 15m]
    ticktick tasks update TASK [--title T] [--due DATE] [--priority LEVEL] ...
    ticktick tasks complete|delete PROJECT TASK
    ticktick tasks search [KEYWORD] [--tags a,b] [--priority LEVEL]
    ticktick tasks due [DAYS]
    ticktick tasks priority

Project and task IDs may be given in full or as their first 8 characters.
Output is JSON unless --format text is given.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable

import httpx
from dotenv import load_dotenv

from ticktick_cli import __version__
from ticktick_cli.app import TickTickApp, build_app
from ticktick_cli.auth import AuthOperations
from ticktick_cli.config import (
    CONFIG_PATH,
    DEFAULT_REDIRECT_URI,
    TOKEN_PATH,
    Credentials,
    has_config,
    load_config,
    save_config,
)
from ticktick_cli.errors import TickTickError, ValidationError
from ticktick_cli.formatting import format_output
from ticktick_cli.tokens import FileTokenStore

logger = logging.getLogger(__name__)

PRIORITY_CHOICES = ["none", "low", "medium", "high"]


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def cmd_auth_status(args):
    return _local_auth().status()


def cmd_auth_logout(args):
    return _local_auth().logout()


async def cmd_auth_login(app: TickTickApp, args):
    return app.auth.login()


async def cmd_auth_exchange(app: TickTickApp, args):
    return await app.auth.exchange(args.code)


async def cmd_auth_refresh(app: TickTickApp, args):
    return await app.auth.refresh()


async def cmd_projects_list(app: TickTickApp, args):
    return await app.projects.list()


async def cmd_projects_get(app: TickTickApp, args):
    return await app.projects.get(args.project_id)


async def cmd_projects_create(app: TickTickApp, args):
    return await app.projects.create(args.name, color=args.color, view_mode=args.view, kind=args.kind)


async def cmd_projects_delete(app: TickTickApp, args):
    return await app.projects.delete(args.project_id)


async def cmd_tasks_list(app: TickTickApp, args):
    return await app.tasks.list(args.project_id)


async def cmd_tasks_get(app: TickTickApp, args):
    return await app.tasks.get(args.project_id, args.task_id)


async def cmd_tasks_create(app: TickTickApp, args):
    return await app.tasks.create(
        args.project_id,
        args.title,
        content=args.content,
        due_date=args.due,
        priority=args.priority,
        tags=args.tags,
        reminder=args.reminder,
    )


async def cmd_tasks_update(app: TickTickApp, args):
    return await app.tasks.update(
        args.task_id,
        project_id=args.project,
        title=args.title,
        content=args.content,
        due_date=args.due,
        priority=args.priority,
        tags=args.tags,
        reminder=args.reminder,
    )


async def cmd_tasks_complete(app: TickTickApp, args):
    return await app.tasks.complete(args.project_id, args.task_id)


async def cmd_tasks_delete(app: TickTickApp, args):
    return await app.tasks.delete(args.project_id, args.task_id)


async def cmd_tasks_search(app: TickTickApp, args):
    return await app.tasks.search(args.keyword, tags=args.tags, priority=args.priority)


async def cmd_tasks_due(app: TickTickApp, args):
    return await app.tasks.due(args.days)


async def cmd_tasks_priority(app: TickTickApp, args):
    return await app.tasks.priority()


def _local_auth() -> AuthOperations:
    """Auth operations that only touch the token file (no config needed)."""
    return AuthOperations(None, FileTokenStore(TOKEN_PATH), TOKEN_PATH)


# ---------------------------------------------------------------------------
# Setup wizard
# ---------------------------------------------------------------------------

async def run_setup(
    prompt: Callable[[str], str] = input,
    config_path: Path = CONFIG_PATH,
    token_path: Path = TOKEN_PATH,
) -> dict:
    """Interactive first-run configuration followed by the OAuth flow."""
    print("\n=== TickTick CLI Setup ===\n")

    if has_config(config_path):
        config = load_config(config_path)
        tokens = FileTokenStore(token_path).load()
        print("Existing configuration found:")
        print(f"  Config: {config_path}")
        print(f"  Client ID: {config.client_id[:8]}...")
        print(f"  Status: {'Authenticated' if tokens else 'Not authenticated'}")
        print()
        if prompt("Reconfigure? (y/N): ").strip().lower() != "y":
            if tokens is None:
                print("\nRunning authentication flow...\n")
                await _run_auth_flow(config, prompt, token_path)
            else:
                print("\nSetup complete! You are already authenticated.")
            return {"success": True, "message": "Setup complete"}
        print()

    print("Step 1: Get API Credentials\n")
    print("  1. Go to https://developer.ticktick.com/")
    print('  2. Sign in and click "Manage Apps"')
    print('  3. Click "+App Name" to create a new app')
    print(f"  4. Set Redirect URI to: {DEFAULT_REDIRECT_URI}")
    print("  5. Copy your Client ID and Client Secret\n")

    client_id = prompt("Client ID: ").strip()
    if not client_id:
        raise ValidationError("Client ID is required")
    client_secret = prompt("Client Secret: ").strip()
    if not client_secret:
        raise ValidationError("Client Secret is required")

    print("\nRegion:")
    print("  1. Global (ticktick.com)")
    print("  2. China (dida365.com)")
    choice = prompt("Select region (1/2) [1]: ").strip() or "1"
    region = "china" if choice == "2" else "global"

    config = Credentials(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=DEFAULT_REDIRECT_URI,
        region=region,
    )
    save_config(config, config_path)
    print(f"\nConfiguration saved to {config_path}")

    print("\nStep 2: Authenticate\n")
    await _run_auth_flow(config, prompt, token_path)
    return {"success": True, "message": "Setup complete!"}


async def _run_auth_flow(config: Credentials, prompt: Callable[[str], str], token_path: Path) -> None:
    app = build_app(config, FileTokenStore(token_path), token_path=token_path)
    try:
        url, _state = app.tokens.authorization_url()
        print("Open this URL in your browser to authorize:\n")
        print(f"  {url}\n")
        print("After authorizing, you will be redirected to a URL like:")
        print(f"  {config.redirect_uri}?code=XXXXXX&state=...\n")

        code = prompt('Paste the "code" value from the URL: ').strip()
        if not code:
            raise ValidationError("Authorization code is required")

        print("\nExchanging code for tokens...")
        await app.auth.exchange(code)
    finally:
        await app.aclose()

    print("\nAuthentication successful!")
    print(f"Tokens saved to {token_path}")
    print("\nYou can now use ticktick. Try: ticktick tasks due")


def cmd_setup(args):
    return asyncio.run(run_setup())


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    # Accepted both before and after the subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--format",
        choices=["json", "text"],
        default=argparse.SUPPRESS,
        help="Output format (default: json)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Debug logging to stderr",
    )

    parser = argparse.ArgumentParser(
        prog="ticktick",
        description="TickTick CLI - Manage tasks and projects",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.set_defaults(format="json", verbose=False)
    subs = parser.add_subparsers(dest="command", required=True)

    # setup
    subs.add_parser("setup", help="Interactive setup wizard", parents=[common]).set_defaults(
        func=cmd_setup, needs_app=False
    )

    # auth
    auth = subs.add_parser("auth", help="Authentication management", parents=[common])
    auth_subs = auth.add_subparsers(dest="action", required=True)
    auth_subs.add_parser("status", help="Check authentication status", parents=[common]).set_defaults(
        func=cmd_auth_status, needs_app=False
    )
    auth_subs.add_parser("login", help="Get authorization URL for OAuth flow", parents=[common]).set_defaults(
        func=cmd_auth_login, needs_app=True
    )
    ae = auth_subs.add_parser("exchange", help="Exchange authorization code for tokens", parents=[common])
    ae.add_argument("code", help="Authorization code from the redirect URL")
    ae.set_defaults(func=cmd_auth_exchange, needs_app=True)
    auth_subs.add_parser("refresh", help="Manually refresh access token", parents=[common]).set_defaults(
        func=cmd_auth_refresh, needs_app=True
    )
    auth_subs.add_parser("logout", help="Clear stored tokens", parents=[common]).set_defaults(
        func=cmd_auth_logout, needs_app=False
    )

    # projects
    projects = subs.add_parser("projects", help="Project operations", parents=[common])
    proj_subs = projects.add_subparsers(dest="action", required=True)

    proj_subs.add_parser("list", help="List all projects", parents=[common]).set_defaults(
        func=cmd_projects_list, needs_app=True
    )

    pg = proj_subs.add_parser("get", help="Get project with tasks", parents=[common])
    pg.add_argument("project_id", help="Project ID (full or short)")
    pg.set_defaults(func=cmd_projects_get, needs_app=True)

    pc = proj_subs.add_parser("create", help="Create new project", parents=[common])
    pc.add_argument("name", help="Project name")
    pc.add_argument("--color", help='Project color (e.g., "#ff6b6b")')
    pc.add_argument("--view", choices=["list", "kanban", "timeline"], help="View mode")
    pc.add_argument("--kind", choices=["TASK", "NOTE"], help="Project kind")
    pc.set_defaults(func=cmd_projects_create, needs_app=True)

    pd = proj_subs.add_parser("delete", help="Delete project", parents=[common])
    pd.add_argument("project_id", help="Project ID (full or short)")
    pd.set_defaults(func=cmd_projects_delete, needs_app=True)

    # tasks
    tasks = subs.add_parser("tasks", help="Task operations", parents=[common])
    tasks_subs = tasks.add_subparsers(dest="action", required=True)

    tl = tasks_subs.add_parser("list", help="List tasks in project", parents=[common])
    tl.add_argument("project_id", help="Project ID (full or short)")
    tl.set_defaults(func=cmd_tasks_list, needs_app=True)

    tg = tasks_subs.add_parser("get", help="Get task details", parents=[common])
    tg.add_argument("project_id", help="Project ID (full or short)")
    tg.add_argument("task_id", help="Task ID (full or short)")
    tg.set_defaults(func=cmd_tasks_get, needs_app=True)

    def add_task_fields(p):
        p.add_argument("--content", help="Task description")
        p.add_argument("--due", help="Due date (ISO 8601 or YYYY-MM-DD)")
        p.add_argument("--priority", choices=PRIORITY_CHOICES, help="Priority level")
        p.add_argument("--tags", help="Comma-separated tags")
        p.add_argument("--reminder", help="Reminder before due: 15m, 1h, 1d")

    tc = tasks_subs.add_parser("create", help="Create task", parents=[common])
    tc.add_argument("project_id", help='Project ID (full or short), e.g. "inbox"')
    tc.add_argument("title", help="Task title")
    add_task_fields(tc)
    tc.set_defaults(func=cmd_tasks_create, needs_app=True)

    tu = tasks_subs.add_parser("update", help="Update task", parents=[common])
    tu.add_argument("task_id", help="Task ID (full or short)")
    tu.add_argument("--project", help="Project ID containing the task")
    tu.add_argument("--title", help="New title")
    add_task_fields(tu)
    tu.set_defaults(func=cmd_tasks_update, needs_app=True)

    for name, func, help_text in (
        ("complete", cmd_tasks_complete, "Complete task"),
        ("delete", cmd_tasks_delete, "Delete task"),
    ):
        p = tasks_subs.add_parser(name, help=help_text, parents=[common])
        p.add_argument("project_id", help="Project ID (full or short)")
        p.add_argument("task_id", help="Task ID (full or short)")
        p.set_defaults(func=func, needs_app=True)

    ts = tasks_subs.add_parser("search", help="Search all tasks", parents=[common])
    ts.add_argument("keyword", nargs="?", help="Text to find in title or content")
    ts.add_argument("--tags", help="Filter by tags (comma-separated)")
    ts.add_argument("--priority", choices=PRIORITY_CHOICES, help="Filter by priority")
    ts.set_defaults(func=cmd_tasks_search, needs_app=True)

    td = tasks_subs.add_parser("due", help="Tasks due within N days (default: 7)", parents=[common])
    td.add_argument("days", nargs="?", type=int, default=7, help="Number of days")
    td.set_defaults(func=cmd_tasks_due, needs_app=True)

    tasks_subs.add_parser("priority", help="High priority tasks", parents=[common]).set_defaults(
        func=cmd_tasks_priority, needs_app=True
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool = False) -> None:
    level = "DEBUG" if verbose else os.environ.get("TICKTICK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


async def run_with_app(func, args) -> object:
    app = build_app()
    try:
        return await func(app, args)
    finally:
        await app.aclose()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.needs_app:
            result = asyncio.run(run_with_app(args.func, args))
        else:
            result = args.func(args)
    except TickTickError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Error: Request failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        return 1

    if result is not None:
        print(format_output(result, args.format))
    return 0


def cli_main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
