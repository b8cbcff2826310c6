"""Edit-boundary models.

The store accepts any well-typed value. These models own the business rules
(title length, progress bounds, date ordering) and produce the sanitized
partial records that callers hand to ``BoardStore.update_task``.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from taskboard.core.config import constants, settings
from taskboard.core.errors import EditValidationError
from taskboard.domain.factories import normalize_task_keys
from taskboard.domain.task import Task, TaskPriority


def _clean_title(v: str, *, max_length: int, label: str) -> str:
    title = v.strip()
    if not title:
        msg = f"{label} must not be empty"
        raise ValueError(msg)
    if len(title) > max_length:
        msg = f"{label} must be at most {max_length} characters"
        raise ValueError(msg)
    return title


class TaskEdit(BaseModel):
    """A validated partial edit of a task."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    column_id: str | None = None
    priority: TaskPriority | None = None
    progress: int | None = Field(default=None, ge=constants.PROGRESS_MIN, le=constants.PROGRESS_MAX)
    start_date: date | None = None
    due_date: date | None = None
    assignees: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Trim the title and enforce non-empty and maximum length."""
        if v is None:
            return v
        return _clean_title(v, max_length=settings.task_title_max_length, label="Title")

    @model_validator(mode="after")
    def validate_date_order(self) -> "TaskEdit":
        """Reject a due date earlier than the start date."""
        if self.start_date and self.due_date and self.due_date < self.start_date:
            msg = "Due date must not be earlier than start date"
            raise ValueError(msg)
        return self

    def to_update(self) -> dict[str, Any]:
        """Return only the fields the caller set, ready for ``update_task``."""
        return self.model_dump(exclude_unset=True)


class ColumnEdit(BaseModel):
    """A validated column rename or creation."""

    model_config = ConfigDict(extra="forbid")

    title: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Trim the title and enforce 1..column_title_max_length characters."""
        return _clean_title(v, max_length=settings.column_title_max_length, label="Column title")


def _error_messages(e: ValidationError) -> list[str]:
    messages = []
    for err in e.errors():
        field = ".".join(str(part) for part in err["loc"])
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return messages


def validate_task_edit(task: Task | None, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Validate an edit payload against a task's current values.

    Date ordering is checked using the task's existing dates for whichever
    side the payload leaves unset.

    Args:
        task: The task being edited, or None for a new task
        payload: Raw edit fields (camelCase keys are accepted)

    Returns:
        Sanitized partial update

    Raises:
        EditValidationError: If any rule is violated
    """
    try:
        edit = TaskEdit.model_validate(normalize_task_keys(payload))
    except ValidationError as e:
        raise EditValidationError(_error_messages(e)) from e

    update = edit.to_update()
    if task is not None:
        start = update.get("start_date", task.start_date)
        due = update.get("due_date", task.due_date)
        if start and due and due < start:
            raise EditValidationError(["Due date must not be earlier than start date"])
    return update


def validate_column_title(title: str) -> str:
    """Return the sanitized column title or raise EditValidationError."""
    try:
        return ColumnEdit(title=title).title
    except ValidationError as e:
        raise EditValidationError(_error_messages(e)) from e
