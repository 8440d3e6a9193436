"""Async TickTick API client using httpx.

Wraps the TickTick Open API v1. One httpx.AsyncClient is created per
process and reused for every request; the bearer token is looked up from
the TokenManager on each call so an expiring token is refreshed in time.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from ticktick_cli.auth import TokenManager
from ticktick_cli.errors import ApiRequestFailed

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


def encode_path(*segments: str) -> str:
    """Join path segments, percent-encoding each one (including '/')."""
    return "/" + "/".join(quote(str(s), safe="") for s in segments)


class TickTickAPI:
    """Async wrapper around the TickTick Open API v1.

    Usage:
        api = TickTickAPI(token_manager, credentials.endpoints.api_base, http)
        projects = await api.get_projects()
    """

    def __init__(self, tokens: TokenManager, base_url: str, http: httpx.AsyncClient) -> None:
        self._tokens = tokens
        self.base_url = base_url.rstrip("/")
        self._http = http

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | list | None = None,
    ) -> dict | list | None:
        """Make an API request and handle errors consistently."""
        access_token = await self._tokens.get_valid_access_token()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if json_body is not None:
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s", method, path)
        response = await self._http.request(
            method,
            f"{self.base_url}{path}",
            json=json_body,
            headers=headers,
        )
        if not response.is_success:
            raise ApiRequestFailed(response.status_code, response.text)
        if response.status_code == 204 or not response.text:
            return None
        try:
            return response.json()
        except ValueError:
            raise ApiRequestFailed(response.status_code, response.text) from None

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_projects(self) -> list[dict]:
        """GET /project — list all projects/lists."""
        result = await self._request("GET", "/project")
        return result if isinstance(result, list) else []

    async def get_project_with_data(self, project_id: str) -> dict:
        """GET /project/{id}/data — project with all tasks."""
        result = await self._request("GET", encode_path("project", project_id, "data"))
        return result if isinstance(result, dict) else {}

    async def get_project_tasks(self, project_id: str) -> list[dict]:
        data = await self.get_project_with_data(project_id)
        tasks = data.get("tasks")
        return tasks if isinstance(tasks, list) else []

    async def create_project(self, body: dict) -> dict:
        """POST /project — create a new project."""
        result = await self._request("POST", "/project", json_body=body)
        return result if isinstance(result, dict) else {}

    async def delete_project(self, project_id: str) -> None:
        """DELETE /project/{id} — delete a project."""
        await self._request("DELETE", encode_path("project", project_id))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def get_task(self, project_id: str, task_id: str) -> dict:
        """GET /project/{pid}/task/{tid} — get a single task."""
        result = await self._request("GET", encode_path("project", project_id, "task", task_id))
        return result if isinstance(result, dict) else {}

    async def create_task(self, body: dict) -> dict:
        """POST /task — create a new task."""
        result = await self._request("POST", "/task", json_body=body)
        return result if isinstance(result, dict) else {}

    async def update_task(self, task_id: str, body: dict) -> dict:
        """POST /task/{id} — update an existing task."""
        result = await self._request("POST", encode_path("task", task_id), json_body=body)
        return result if isinstance(result, dict) else {}

    async def complete_task(self, project_id: str, task_id: str) -> None:
        """POST /project/{pid}/task/{tid}/complete — complete a task."""
        await self._request("POST", encode_path("project", project_id, "task", task_id, "complete"))

    async def delete_task(self, project_id: str, task_id: str) -> None:
        """DELETE /project/{pid}/task/{tid} — delete a task."""
        await self._request("DELETE", encode_path("project", project_id, "task", task_id))
