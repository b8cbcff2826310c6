"""Board state snapshot and its raw (persisted) form."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taskboard.core.config import constants
from taskboard.domain.column import Column, Project
from taskboard.domain.filter import TaskFilter
from taskboard.domain.task import Task


RawState = dict[str, Any]


class BoardState(BaseModel):
    """Immutable snapshot of everything the store owns.

    ``tasks`` is one globally ordered sequence; a column's tasks are the
    subsequence whose ``column_id`` matches, in that order.
    """

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = Field(default=(), description="All tasks in global board order")
    columns: tuple[Column, ...] = Field(default=(), description="Columns in display order")
    projects: tuple[Project, ...] = Field(default=(), description="Projects; the default project is always present")
    current_project_id: str = Field(default=constants.DEFAULT_PROJECT_ID, description="Active project")
    filters: TaskFilter = Field(default_factory=TaskFilter, description="Active filter")

    def to_raw(self) -> RawState:
        """Serialize to a JSON-compatible dict, leaving out derived counts."""
        return {
            "version": constants.STATE_SCHEMA_VERSION,
            "tasks": [task.model_dump(mode="json") for task in self.tasks],
            "columns": [column.model_dump(mode="json", exclude={"task_count"}) for column in self.columns],
            "projects": [project.model_dump(mode="json", exclude={"task_count"}) for project in self.projects],
            "current_project_id": self.current_project_id,
            "filters": self.filters.model_dump(mode="json"),
        }

    @classmethod
    def from_raw(cls, raw: RawState) -> "BoardState":
        """Build a snapshot from an already reconciled raw state."""
        return cls.model_validate(raw)

    @property
    def default_column_id(self) -> str | None:
        """The first column receives tasks from deleted columns."""
        return self.columns[0].id if self.columns else None

    def column_ids(self) -> set[str]:
        return {column.id for column in self.columns}

    def project_ids(self) -> set[str]:
        return {project.id for project in self.projects}
