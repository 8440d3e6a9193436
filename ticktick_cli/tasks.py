"""Task operations: CRUD plus the cross-project search, due and priority views.

Every operation resolves short IDs first and then makes its API call(s)
one at a time. Scans over all projects skip projects whose task list
cannot be fetched, so one broken project never hides the rest.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable

from ticktick_cli.errors import ValidationError
from ticktick_cli.ids import SKIPPABLE_ERRORS, IdResolver, short_id
from ticktick_cli.models import (
    Project,
    Task,
    format_priority,
    parse_priority,
    parse_reminder,
    split_tags,
)
from ticktick_cli.projects import task_summary_row
from ticktick_cli.queries import is_due_within, is_high_priority, matches_search, sort_by_due_date

if TYPE_CHECKING:
    from ticktick_cli.client import TickTickAPI

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def task_detail_row(task: Task) -> dict[str, Any]:
    return {
        "id": short_id(task.id),
        "fullId": task.id,
        "projectId": short_id(task.project_id),
        "fullProjectId": task.project_id,
        "title": task.title,
        "content": task.content,
        "dueDate": task.due_date,
        "startDate": task.start_date,
        "priority": format_priority(task.priority),
        "tags": task.tags,
        "status": task.status_label,
        "completedTime": task.completed_time,
        "reminders": task.reminders,
        "repeatFlag": task.repeat_flag,
        "items": task.items,
        "createdTime": task.created_time,
        "modifiedTime": task.modified_time,
    }


def task_write_row(task: Task) -> dict[str, Any]:
    return {
        "id": short_id(task.id),
        "fullId": task.id,
        "projectId": short_id(task.project_id),
        "title": task.title,
        "dueDate": task.due_date,
        "priority": format_priority(task.priority),
        "tags": task.tags,
    }


def task_scan_row(task: Task, project: Project) -> dict[str, Any]:
    return {
        "id": short_id(task.id),
        "fullId": task.id,
        "projectId": short_id(task.project_id),
        "projectName": project.name,
        "title": task.title,
        "dueDate": task.due_date,
        "priority": format_priority(task.priority),
        "tags": task.tags,
    }


def _optional_fields(
    *,
    content: str | None,
    due_date: str | None,
    priority: str | None,
    tags: str | list[str] | None,
    reminder: str | None,
) -> dict[str, Any]:
    """Build the optional part of a task body. Absent values are left out."""
    body: dict[str, Any] = {}
    if content:
        body["content"] = content
    if due_date:
        body["dueDate"] = due_date
    level = parse_priority(priority)
    if level is not None:
        body["priority"] = level
    tag_list = split_tags(tags)
    if tag_list:
        body["tags"] = tag_list
    trigger = parse_reminder(reminder)
    if trigger:
        body["reminders"] = [trigger]
    return body


class TaskOperations:
    """Task CRUD and filters built on the API client and ID resolver."""

    def __init__(
        self,
        api: TickTickAPI,
        resolver: IdResolver,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._api = api
        self._resolver = resolver
        self._now = now

    # ── Read ──────────────────────────────────────────────────────────

    async def list(self, project_id: str) -> list[dict]:
        resolved = await self._resolver.resolve_project_id(project_id)
        tasks = await self._api.get_project_tasks(resolved)
        return [task_summary_row(Task.from_api(t)) for t in tasks]

    async def get(self, project_id: str, task_id: str) -> dict:
        resolved_project = await self._resolver.resolve_project_id(project_id)
        resolved_task = await self._resolver.resolve_task_id(task_id, resolved_project)
        task = await self._api.get_task(resolved_project, resolved_task)
        return task_detail_row(Task.from_api(task))

    # ── Write ─────────────────────────────────────────────────────────

    async def create(
        self,
        project_id: str,
        title: str,
        *,
        content: str | None = None,
        due_date: str | None = None,
        priority: str | None = None,
        tags: str | list[str] | None = None,
        reminder: str | None = None,
    ) -> dict:
        """Create a task. An empty ``project_id`` targets the inbox."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        # Parse user input before any request is made.
        optional = _optional_fields(
            content=content, due_date=due_date, priority=priority, tags=tags, reminder=reminder
        )

        resolved_project = await self._resolver.resolve_project_id(project_id)
        body: dict[str, Any] = {"title": title, "projectId": resolved_project, **optional}

        task = await self._api.create_task(body)
        return {"success": True, "task": task_write_row(Task.from_api(task))}

    async def update(
        self,
        task_id: str,
        *,
        project_id: str | None = None,
        title: str | None = None,
        content: str | None = None,
        due_date: str | None = None,
        priority: str | None = None,
        tags: str | list[str] | None = None,
        reminder: str | None = None,
    ) -> dict:
        """Update only the fields that are given."""
        optional = _optional_fields(
            content=content, due_date=due_date, priority=priority, tags=tags, reminder=reminder
        )

        resolved_project = None
        if project_id:
            resolved_project = await self._resolver.resolve_project_id(project_id)
        resolved_task = await self._resolver.resolve_task_id(task_id, resolved_project)

        body: dict[str, Any] = {"id": resolved_task}
        if resolved_project:
            body["projectId"] = resolved_project
        if title and title.strip():
            body["title"] = title.strip()
        body.update(optional)

        task = await self._api.update_task(resolved_task, body)
        return {"success": True, "task": task_write_row(Task.from_api(task))}

    async def complete(self, project_id: str, task_id: str) -> dict:
        resolved_project = await self._resolver.resolve_project_id(project_id)
        resolved_task = await self._resolver.resolve_task_id(task_id, resolved_project)
        await self._api.complete_task(resolved_project, resolved_task)
        return {"success": True, "message": f"Task {short_id(resolved_task)} completed"}

    async def delete(self, project_id: str, task_id: str) -> dict:
        resolved_project = await self._resolver.resolve_project_id(project_id)
        resolved_task = await self._resolver.resolve_task_id(task_id, resolved_project)
        await self._api.delete_task(resolved_project, resolved_task)
        return {"success": True, "message": f"Task {short_id(resolved_task)} deleted"}

    # ── Cross-project views ───────────────────────────────────────────

    async def _scan(self):
        """Yield (project, task) for every readable project, in order."""
        projects = [Project.from_api(p) for p in await self._api.get_projects()]
        for project in projects:
            try:
                raw_tasks = await self._api.get_project_tasks(project.id)
            except SKIPPABLE_ERRORS as e:
                logger.warning("Skipping project %s (%s): %s", project.name, short_id(project.id), e)
                continue
            for raw in raw_tasks:
                yield project, Task.from_api(raw)

    async def search(
        self,
        keyword: str | None = None,
        *,
        tags: str | list[str] | None = None,
        priority: str | None = None,
    ) -> dict:
        tag_list = split_tags(tags)
        results = []
        async for project, task in self._scan():
            if matches_search(task, keyword, tag_list, priority):
                row = task_scan_row(task, project)
                row["content"] = task.content
                row["status"] = task.status_label
                results.append(row)
        return {"keyword": keyword or "", "count": len(results), "tasks": results}

    async def due(self, days: int = 7) -> dict:
        """Active tasks due within ``days`` days, overdue ones included."""
        cutoff = self._now() + timedelta(days=days)
        results = []
        async for project, task in self._scan():
            if is_due_within(task, cutoff):
                results.append(task_scan_row(task, project))
        results = sort_by_due_date(results)
        return {"days": days, "count": len(results), "tasks": results}

    async def priority(self) -> dict:
        results = []
        async for project, task in self._scan():
            if is_high_priority(task):
                results.append(task_scan_row(task, project))
        return {"count": len(results), "tasks": results}
