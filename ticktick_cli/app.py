"""Component wiring shared by the CLI and the MCP server."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from ticktick_cli.auth import AuthOperations, TokenManager
from ticktick_cli.client import REQUEST_TIMEOUT, TickTickAPI
from ticktick_cli.config import CONFIG_PATH, TOKEN_PATH, Credentials, load_config
from ticktick_cli.ids import IdResolver
from ticktick_cli.projects import ProjectOperations
from ticktick_cli.tasks import TaskOperations
from ticktick_cli.tokens import FileTokenStore, TokenStore


@dataclass
class TickTickApp:
    """All collaborators for one process, constructed once at startup.

        app.auth      - login / exchange / refresh / logout / status
        app.projects  - project operations
        app.tasks     - task operations and cross-project views
    """

    credentials: Credentials
    store: TokenStore
    http: httpx.AsyncClient
    tokens: TokenManager
    api: TickTickAPI
    resolver: IdResolver
    auth: AuthOperations
    projects: ProjectOperations
    tasks: TaskOperations

    async def aclose(self) -> None:
        await self.http.aclose()


def build_app(
    credentials: Credentials | None = None,
    store: TokenStore | None = None,
    http: httpx.AsyncClient | None = None,
    *,
    config_path: Path = CONFIG_PATH,
    token_path: Path = TOKEN_PATH,
) -> TickTickApp:
    """Construct the app. Raises NoConfigFound/InvalidConfigFile/InvalidRegion."""
    credentials = credentials or load_config(config_path)
    endpoints = credentials.endpoints
    if store is None:
        store = FileTokenStore(token_path)
    http = http or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)

    tokens = TokenManager(credentials, store, http)
    api = TickTickAPI(tokens, endpoints.api_base, http)
    resolver = IdResolver(api)
    return TickTickApp(
        credentials=credentials,
        store=store,
        http=http,
        tokens=tokens,
        api=api,
        resolver=resolver,
        auth=AuthOperations(tokens, store, getattr(store, "path", None)),
        projects=ProjectOperations(api, resolver),
        tasks=TaskOperations(api, resolver),
    )
