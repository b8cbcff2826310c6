"""Domain models and factories."""

from taskboard.domain.board import BoardState, RawState
from taskboard.domain.column import Column, Project
from taskboard.domain.factories import create_column, create_project, create_task
from taskboard.domain.filter import DateRange, TaskFilter
from taskboard.domain.task import Task, TaskPriority
from taskboard.domain.update_models import ColumnEdit, TaskEdit


__all__ = [
    "BoardState",
    "Column",
    "ColumnEdit",
    "DateRange",
    "Project",
    "RawState",
    "Task",
    "TaskEdit",
    "TaskFilter",
    "TaskPriority",
    "create_column",
    "create_project",
    "create_task",
]
