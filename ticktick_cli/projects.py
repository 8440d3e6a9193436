"""Project (list) operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ticktick_cli.errors import ValidationError
from ticktick_cli.ids import IdResolver, short_id
from ticktick_cli.models import Project, Task, format_priority

if TYPE_CHECKING:
    from ticktick_cli.client import TickTickAPI


def project_row(project: Project) -> dict[str, Any]:
    return {
        "id": short_id(project.id),
        "fullId": project.id,
        "name": project.name,
        "color": project.color,
        "viewMode": project.view_mode,
        "kind": project.kind,
        "closed": project.closed,
    }


def task_summary_row(task: Task) -> dict[str, Any]:
    return {
        "id": short_id(task.id),
        "fullId": task.id,
        "title": task.title,
        "content": task.content,
        "dueDate": task.due_date,
        "priority": format_priority(task.priority),
        "tags": task.tags,
        "status": task.status_label,
        "completedTime": task.completed_time,
    }


class ProjectOperations:
    """List, inspect, create and delete projects."""

    def __init__(self, api: TickTickAPI, resolver: IdResolver) -> None:
        self._api = api
        self._resolver = resolver

    async def list(self) -> list[dict]:
        projects = await self._api.get_projects()
        return [project_row(Project.from_api(p)) for p in projects]

    async def get(self, project_id: str) -> dict:
        """Get a project with its tasks."""
        resolved = await self._resolver.resolve_project_id(project_id)
        data = await self._api.get_project_with_data(resolved)
        project = Project.from_api(data.get("project") or {"id": resolved})
        tasks = [Task.from_api(t) for t in data.get("tasks") or []]
        row = project_row(project)
        return {
            "project": {k: row[k] for k in ("id", "fullId", "name", "color", "viewMode")},
            "tasks": [task_summary_row(t) for t in tasks],
            "taskCount": len(tasks),
        }

    async def create(
        self,
        name: str,
        *,
        color: str | None = None,
        view_mode: str | None = None,
        kind: str | None = None,
    ) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Project name is required")

        body: dict[str, Any] = {"name": name}
        if color:
            body["color"] = color
        if view_mode:
            body["viewMode"] = view_mode
        if kind:
            body["kind"] = kind

        result = await self._api.create_project(body)
        row = project_row(Project.from_api(result))
        return {
            "success": True,
            "project": {k: row[k] for k in ("id", "fullId", "name", "color", "viewMode")},
        }

    async def delete(self, project_id: str) -> dict:
        resolved = await self._resolver.resolve_project_id(project_id)
        await self._api.delete_project(resolved)
        return {"success": True, "message": f"Project {short_id(resolved)} deleted"}
