"""Entity construction with defaults, and best-effort field merging."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from taskboard.core.config import constants
from taskboard.core.dates import parse_calendar_date
from taskboard.core.ids import IdGenerator, uuid_id_generator
from taskboard.domain.column import Column, Project
from taskboard.domain.task import TASK_FIELD_ALIASES, Task


logger = logging.getLogger(__name__)


DATE_FIELDS = frozenset({"start_date", "due_date"})
IMMUTABLE_TASK_FIELDS = frozenset({"id"})
COLUMN_KEYS = ("column_id", "columnId")


def normalize_task_keys(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase/legacy keys onto task field names. Canonical keys win.

    ``status`` names the column only when no explicit column key is present;
    next to ``columnId`` it is a legacy workflow flag and is dropped.
    """
    has_column_key = any(key in fields for key in COLUMN_KEYS)
    normalized: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "status" and has_column_key:
            continue
        canonical = TASK_FIELD_ALIASES.get(key, key)
        if canonical != key and canonical in fields:
            continue
        normalized[canonical] = value
    return normalized


def merge_task_fields(task: Task, fields: Mapping[str, Any]) -> tuple[Task, list[str]]:
    """Merge a partial update onto a task, dropping the fields that do not fit.

    Date fields that do not parse to a calendar date are dropped (``None``
    clears a date). Unknown keys and ``id`` are dropped. Values pydantic cannot
    coerce to the field type are dropped. Everything else is taken as given:
    business rules such as progress bounds or date ordering are checked at the
    edit boundary, not here.

    Returns:
        Tuple of (merged task, names of dropped fields)
    """
    dropped: list[str] = []
    changes: dict[str, Any] = {}

    for key, value in normalize_task_keys(fields).items():
        if key not in Task.model_fields or key in IMMUTABLE_TASK_FIELDS:
            dropped.append(key)
            continue
        if key in DATE_FIELDS and value is not None:
            parsed = parse_calendar_date(value)
            if parsed is None:
                dropped.append(key)
                continue
            value = parsed
        changes[key] = value

    if not changes:
        return task, dropped

    data = task.model_dump() | changes
    while True:
        try:
            return Task.model_validate(data), dropped
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"] and err["loc"][0] in changes}
            if not bad:
                raise
            for key in bad:
                data[key] = getattr(task, key)
                changes.pop(key)
                dropped.append(str(key))


def create_task(
    column_id: str,
    overrides: Mapping[str, Any] | None = None,
    *,
    project_id: str = constants.DEFAULT_PROJECT_ID,
    id_generator: IdGenerator = uuid_id_generator,
) -> Task:
    """Create a task with a fresh id and default field values.

    Args:
        column_id: Column the task starts in
        overrides: Field values merged over the defaults (same rules as updates)
        project_id: Owning project
        id_generator: Source of the new id

    Returns:
        The new task
    """
    task = Task(id=id_generator(), column_id=column_id, project_id=project_id)
    if not overrides:
        return task

    placement = {"column_id", "project_id"}
    extra = {k: v for k, v in normalize_task_keys(overrides).items() if k not in placement}
    task, dropped = merge_task_fields(task, extra)
    if dropped:
        logger.debug("Dropped fields on task creation", extra={"task_id": task.id, "fields": dropped})
    return task


def create_column(title: str, *, position: int = 0, id_generator: IdGenerator = uuid_id_generator) -> Column:
    """Create a column with a fresh id."""
    return Column(id=id_generator(), title=title, position=position)


def create_project(project_name: str, *, id_generator: IdGenerator = uuid_id_generator) -> Project:
    """Create a project with a fresh id."""
    return Project(id=id_generator(), name=project_name)
