"""Typed records, field codecs and MCP tool input models.

API responses are turned into ``Project``/``Task`` records at one place
(``from_api``) so defaulting rules for missing fields live here and not in
every operation. Tool inputs use strict pydantic models so bad input is
caught before it hits the API.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ticktick_cli.errors import InvalidPriorityValue, InvalidReminderFormat


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ProjectViewMode(str, Enum):
    """TickTick project view modes."""
    LIST = "list"
    KANBAN = "kanban"
    TIMELINE = "timeline"


class ProjectKind(str, Enum):
    """TickTick project kinds."""
    TASK = "TASK"
    NOTE = "NOTE"


class TaskPriority(int, Enum):
    """TickTick task priority levels. 2 and 4 are unused by the API."""
    NONE = 0
    LOW = 1
    MEDIUM = 3
    HIGH = 5


TASK_STATUS_COMPLETED = 2

PriorityLevel = Literal["none", "low", "medium", "high"]


# ---------------------------------------------------------------------------
# Field codecs
# ---------------------------------------------------------------------------

def parse_priority(priority: str | None) -> int | None:
    """Convert none/low/medium/high to the API's numeric priority."""
    if not priority:
        return None
    try:
        return TaskPriority[priority.strip().upper()].value
    except KeyError:
        raise InvalidPriorityValue(priority) from None


def format_priority(value: Any) -> str:
    """Convert a numeric priority to its level name; unknown values are 'none'."""
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return TaskPriority(value).name.lower()
        except ValueError:
            pass
    return "none"


_REMINDER_RE = re.compile(r"^(\d+)(m|h|d)$")


def try_parse_reminder(reminder: str | None) -> str | None:
    """Best-effort reminder parsing: None for empty or malformed input."""
    if not reminder:
        return None
    match = _REMINDER_RE.match(reminder)
    if not match:
        return None
    n, unit = int(match.group(1)), match.group(2)
    if unit == "m":
        return f"TRIGGER:-PT{n}M"
    if unit == "h":
        return f"TRIGGER:-PT{n}H"
    return f"TRIGGER:-P{n}D"


def parse_reminder(reminder: str | None) -> str | None:
    """Convert 15m / 1h / 1d to an iCalendar TRIGGER.

    Returns None when no reminder is given and raises
    InvalidReminderFormat for anything else that does not match.
    """
    if not reminder:
        return None
    trigger = try_parse_reminder(reminder)
    if trigger is None:
        raise InvalidReminderFormat(reminder)
    return trigger


def split_tags(tags: str | list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip() for t in tags if t and t.strip()]


# ---------------------------------------------------------------------------
# Entity records
# ---------------------------------------------------------------------------

_RECORD_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class Project(BaseModel):
    """A TickTick project (list)."""
    model_config = _RECORD_CONFIG

    id: str
    name: str = ""
    color: Optional[str] = None
    view_mode: Optional[str] = Field(default=None, alias="viewMode")
    kind: Optional[str] = None
    closed: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def none_name(cls, v):
        return "" if v is None else v

    @field_validator("closed", mode="before")
    @classmethod
    def none_closed(cls, v):
        return bool(v)

    @classmethod
    def from_api(cls, raw: dict) -> "Project":
        return cls.model_validate(raw)


class Task(BaseModel):
    """A TickTick task. Server-owned; the client only sends partial bodies."""
    model_config = _RECORD_CONFIG

    id: str
    project_id: str = Field(default="", alias="projectId")
    title: str = ""
    content: str = ""
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    priority: int = 0
    tags: list[str] = Field(default_factory=list)
    status: int = 0
    reminders: Optional[list[str]] = None
    repeat_flag: Optional[str] = Field(default=None, alias="repeatFlag")
    items: Optional[list[dict]] = None
    completed_time: Optional[str] = Field(default=None, alias="completedTime")
    created_time: Optional[str] = Field(default=None, alias="createdTime")
    modified_time: Optional[str] = Field(default=None, alias="modifiedTime")

    @field_validator("project_id", "title", "content", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v

    @field_validator("priority", "status", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0 if v is None else v

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_STATUS_COMPLETED

    @property
    def status_label(self) -> str:
        return "completed" if self.is_completed else "active"

    @classmethod
    def from_api(cls, raw: dict) -> "Task":
        return cls.model_validate(raw)


# ---------------------------------------------------------------------------
# Tool input models
# ---------------------------------------------------------------------------

_STRICT_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    validate_assignment=True,
    extra="forbid",
)


class GetProjectInput(BaseModel):
    """Input for getting a project with its tasks."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(
        ...,
        description="Project ID, full or short (first 8 characters)",
        min_length=1,
    )


class CreateProjectInput(BaseModel):
    """Input for creating a new project."""
    model_config = _STRICT_CONFIG

    name: str = Field(
        ...,
        description="Project name (e.g., 'Work Tasks', 'Shopping List')",
        min_length=1,
        max_length=200,
    )
    color: Optional[str] = Field(
        default=None,
        description="Hex color code (e.g., '#4772FA')",
        pattern=r"^#[0-9a-fA-F]{6}$",
    )
    view_mode: Optional[ProjectViewMode] = Field(
        default=None,
        description="View mode: 'list', 'kanban', or 'timeline'",
    )
    kind: Optional[ProjectKind] = Field(
        default=None,
        description="Project kind: 'TASK' or 'NOTE'",
    )


class DeleteProjectInput(BaseModel):
    """Input for deleting a project."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(..., description="Project ID to delete (full or short)", min_length=1)


class ListTasksInput(BaseModel):
    """Input for listing tasks in a project."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(
        default="",
        description="Project ID (full or short). Empty means the inbox.",
    )


class GetTaskInput(BaseModel):
    """Input for getting a single task."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(..., description="Project ID containing the task", min_length=1)
    task_id: str = Field(..., description="Task ID (short or full)", min_length=1)


class CreateTaskInput(BaseModel):
    """Input for creating a new task."""
    model_config = _STRICT_CONFIG

    title: str = Field(
        ...,
        description="Task title (e.g., 'Buy groceries', 'Review PR #42')",
        max_length=500,
    )
    project_id: str = Field(
        default="",
        description="Project ID (full or short). Omit for the inbox.",
    )
    content: Optional[str] = Field(default=None, description="Task description/content", max_length=5000)
    due_date: Optional[str] = Field(default=None, description="Due date (YYYY-MM-DD or ISO 8601)")
    priority: Optional[PriorityLevel] = Field(default=None, description="Task priority")
    tags: Optional[list[str]] = Field(default=None, description="Task tags (e.g., ['work', 'urgent'])")
    reminder: Optional[str] = Field(default=None, description="Reminder before due (e.g., 15m, 1h, 1d)")


class UpdateTaskInput(BaseModel):
    """Input for updating an existing task."""
    model_config = _STRICT_CONFIG

    task_id: str = Field(..., description="Task ID (short or full)", min_length=1)
    project_id: Optional[str] = Field(default=None, description="Project ID containing the task")
    title: Optional[str] = Field(default=None, description="New task title", min_length=1, max_length=500)
    content: Optional[str] = Field(default=None, description="New task description/content", max_length=5000)
    due_date: Optional[str] = Field(default=None, description="New due date (YYYY-MM-DD or ISO 8601)")
    priority: Optional[PriorityLevel] = Field(default=None, description="New task priority")
    tags: Optional[list[str]] = Field(default=None, description="New task tags")
    reminder: Optional[str] = Field(default=None, description="New reminder before due (e.g., 15m, 1h, 1d)")


class CompleteTaskInput(BaseModel):
    """Input for completing a task."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(..., description="Project ID containing the task", min_length=1)
    task_id: str = Field(..., description="Task ID to complete (short or full)", min_length=1)


class DeleteTaskInput(BaseModel):
    """Input for deleting a task."""
    model_config = _STRICT_CONFIG

    project_id: str = Field(..., description="Project ID containing the task", min_length=1)
    task_id: str = Field(..., description="Task ID to delete (short or full)", min_length=1)


class SearchTasksInput(BaseModel):
    """Input for searching tasks across all projects."""
    model_config = _STRICT_CONFIG

    keyword: Optional[str] = Field(
        default=None,
        description="Text to search for in task titles and content (case-insensitive)",
    )
    tags: Optional[list[str]] = Field(default=None, description="Match tasks carrying any of these tags")
    priority: Optional[PriorityLevel] = Field(default=None, description="Filter by priority")


class DueTasksInput(BaseModel):
    """Input for tasks due within N days."""
    model_config = _STRICT_CONFIG

    days: int = Field(default=7, description="Number of days to look ahead (default: 7)", ge=0)

