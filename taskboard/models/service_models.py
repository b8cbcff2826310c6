"""Pydantic models for service layer return types."""

from pydantic import BaseModel


class ColumnStats(BaseModel):
    """Task count for one column of the current project."""

    column_id: str
    title: str
    task_count: int


class BoardStats(BaseModel):
    """Summary counts for the current project."""

    project_id: str
    total: int
    by_column: list[ColumnStats]
    by_priority: dict[str, int]
    overdue: int
    completed: int
