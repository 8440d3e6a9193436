"""Short-ID aliasing.

A short ID is the first 8 characters of an opaque TickTick ID. Users may
type either form; ``IdResolver`` expands short IDs by prefix-matching
against freshly fetched listings. Resolution never fails on "not found":
an unmatched short ID is passed through and the API decides.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from ticktick_cli.errors import ApiRequestFailed, InboxNotFound

if TYPE_CHECKING:
    from ticktick_cli.client import TickTickAPI

logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 8
INBOX_PREFIX = "inbox"

# Per-project fetch failures that scans and the resolver skip over.
SKIPPABLE_ERRORS = (ApiRequestFailed, httpx.HTTPError)


def short_id(full_id: str | None) -> str:
    if not full_id:
        return ""
    return full_id[:SHORT_ID_LENGTH]


def is_short_id(value: str | None) -> bool:
    return len(value or "") <= SHORT_ID_LENGTH


def _first_prefix_match(items: list[dict], prefix: str) -> str | None:
    for item in items:
        item_id = item.get("id") or ""
        if item_id.startswith(prefix):
            return item_id
    return None


class IdResolver:
    """Expand short project and task IDs to full IDs."""

    def __init__(self, api: TickTickAPI) -> None:
        self._api = api

    async def resolve_project_id(self, project_id: str | None) -> str:
        """Resolve a project ID; empty means the inbox.

        Full IDs (longer than 8 characters) come back unchanged without a
        request. Otherwise the first project in listing order whose ID
        starts with ``project_id`` wins.
        """
        project_id = project_id or ""
        if project_id and not is_short_id(project_id):
            return project_id

        projects = await self._api.get_projects()

        if not project_id:
            inbox = _first_prefix_match(projects, INBOX_PREFIX)
            if inbox is None:
                raise InboxNotFound()
            return inbox

        match = _first_prefix_match(projects, project_id)
        if match is not None:
            logger.debug("Resolved project %s -> %s", project_id, match)
            return match
        return project_id

    async def resolve_task_id(self, task_id: str, project_id: str | None = None) -> str:
        """Resolve a task ID, looking in ``project_id`` first when given.

        Falls back to scanning every project in listing order, one request
        at a time. An empty ID is returned as is.
        """
        if not task_id or not is_short_id(task_id):
            return task_id

        if project_id:
            try:
                tasks = await self._api.get_project_tasks(project_id)
            except SKIPPABLE_ERRORS as e:
                logger.debug("Task lookup in project %s failed: %s", project_id, e)
            else:
                match = _first_prefix_match(tasks, task_id)
                if match is not None:
                    return match

        projects = await self._api.get_projects()
        for project in projects:
            pid = project.get("id") or ""
            try:
                tasks = await self._api.get_project_tasks(pid)
            except SKIPPABLE_ERRORS as e:
                logger.debug("Skipping project %s during task lookup: %s", pid, e)
                continue
            match = _first_prefix_match(tasks, task_id)
            if match is not None:
                logger.debug("Resolved task %s -> %s", task_id, match)
                return match

        return task_id
