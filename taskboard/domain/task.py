"""Task domain models and enums."""

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskboard.core.config import constants


class TaskPriority(StrEnum):
    """Task priority, most pressing first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Legacy and camelCase spellings accepted wherever task fields come in as a mapping
TASK_FIELD_ALIASES: dict[str, str] = {
    "columnId": "column_id",
    "status": "column_id",
    "projectId": "project_id",
    "startDate": "start_date",
    "dueDate": "due_date",
    "createdAt": "created_at",
    "content": "title",
}


class Task(BaseModel):
    """A single unit of work on the board.

    Tasks are immutable; the store replaces them with updated copies.
    Relationships to columns and projects are by id only.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique task ID")
    title: str = Field(default=constants.DEFAULT_TASK_TITLE, description="Task title")
    description: str = Field(default=constants.DEFAULT_TASK_DESCRIPTION, description="Detailed task description")
    column_id: str = Field(..., description="ID of the column (workflow stage) holding the task")
    project_id: str = Field(default=constants.DEFAULT_PROJECT_ID, description="ID of the owning project")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    progress: int = Field(default=0, description="Completion percentage, 0-100")
    start_date: date | None = Field(default=None, description="Planned start (calendar date)")
    due_date: date | None = Field(default=None, description="Due date (calendar date)")
    assignees: tuple[str, ...] = Field(default=(), description="Assigned member IDs, in display order")
    tags: tuple[str, ...] = Field(default=(), description="Free-form tags")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Creation timestamp")

    @field_validator("assignees", "tags")
    @classmethod
    def _drop_duplicates(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(v))
