"""Board store: the single owner of board state.

The store holds one immutable ``BoardState`` snapshot. Every write builds a
new snapshot with recomputed column and project counts and swaps it in, so a
snapshot handed out earlier never changes underneath its holder.

Writes are permissive. Unknown ids, unknown columns and unparsable dates are
logged no-ops rather than errors; strict checking belongs to the edit
boundary in ``taskboard.domain.update_models``.
"""

import logging
from collections import Counter
from collections.abc import Mapping
from datetime import date
from typing import Any

from taskboard.core.config import constants
from taskboard.core.ids import CounterIdGenerator, IdGenerator, default_id_generator
from taskboard.core.logging import log_with_context, span
from taskboard.domain.board import BoardState, RawState
from taskboard.domain.column import Column, Project
from taskboard.domain.factories import (
    create_column,
    create_project,
    create_task,
    merge_task_fields,
    normalize_task_keys,
)
from taskboard.domain.filter import TaskFilter
from taskboard.domain.task import Task, TaskPriority
from taskboard.models.service_models import BoardStats, ColumnStats
from taskboard.services import filter_service, ordering, seed_data


logger = logging.getLogger(__name__)


def _with_counts(state: BoardState) -> BoardState:
    """Return ``state`` with derived task counts brought up to date."""
    by_column = Counter(task.column_id for task in state.tasks)
    by_project = Counter(task.project_id for task in state.tasks)
    columns = tuple(
        column
        if column.task_count == by_column[column.id]
        else column.model_copy(update={"task_count": by_column[column.id]})
        for column in state.columns
    )
    projects = tuple(
        project
        if project.task_count == by_project[project.id]
        else project.model_copy(update={"task_count": by_project[project.id]})
        for project in state.projects
    )
    return state.model_copy(update={"columns": columns, "projects": projects})


def _all_ids(state: BoardState) -> list[str]:
    return [record.id for record in (*state.tasks, *state.columns, *state.projects)]


def empty_board() -> BoardState:
    """A board with the default columns and project and no tasks."""
    return BoardState.from_raw({"columns": seed_data.default_columns(), "projects": [seed_data.default_project()]})


class BoardStore:
    """Synchronous, single-writer container for one board."""

    def __init__(self, state: BoardState | None = None, *, id_generator: IdGenerator | None = None) -> None:
        self._id_generator = id_generator or default_id_generator()
        self._state = _with_counts(state if state is not None else empty_board())
        if isinstance(self._id_generator, CounterIdGenerator):
            self._id_generator.advance_past(_all_ids(self._state))

    @property
    def state(self) -> BoardState:
        return self._state

    def _commit(self, **changes: Any) -> BoardState:
        self._state = _with_counts(self._state.model_copy(update=changes))
        return self._state

    def snapshot(self) -> BoardState:
        """Return the current snapshot (immutable, safe to keep)."""
        return self._state

    def restore(self, state: BoardState) -> None:
        """Replace the whole state with an earlier snapshot."""
        self._state = _with_counts(state)

    def to_raw(self) -> RawState:
        return self._state.to_raw()

    # --- tasks ---------------------------------------------------------------

    def get_task_by_id(self, task_id: str) -> Task | None:
        return next((task for task in self._state.tasks if task.id == task_id), None)

    def add_task(self, column_id: str | None = None, fields: Mapping[str, Any] | None = None) -> Task:
        """Create a task at the end of a column in the current project.

        Args:
            column_id: Target column; unknown or missing ids use the default column
            fields: Initial field values (same merge rules as ``update_task``)

        Returns:
            The new task
        """
        with span("board_store.add_task"):
            if column_id not in self._state.column_ids():
                if column_id is not None:
                    logger.info("Unknown column on add, using default column", extra={"column_id": column_id})
                column_id = self._state.default_column_id
            task = create_task(
                column_id,
                fields,
                project_id=self._state.current_project_id,
                id_generator=self._id_generator,
            )
            self._commit(tasks=(*self._state.tasks, task))
            log_with_context(logger, "info", "Task added", task_id=task.id, column_id=column_id)
            return task

    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task | None:
        """Merge a partial update onto a task.

        Unparsable date fields, unknown keys, ``id`` and references to unknown
        columns or projects are dropped individually; the rest of the update
        still applies. Values are otherwise taken as given.

        Returns:
            The updated task, or None if no task has ``task_id``
        """
        with span("board_store.update_task"):
            task = self.get_task_by_id(task_id)
            if task is None:
                logger.debug("update_task ignored unknown task", extra={"task_id": task_id})
                return None

            changes = normalize_task_keys(fields)
            dropped = []
            if "column_id" in changes and changes["column_id"] not in self._state.column_ids():
                changes.pop("column_id")
                dropped.append("column_id")
            if "project_id" in changes and changes["project_id"] not in self._state.project_ids():
                changes.pop("project_id")
                dropped.append("project_id")

            updated, merge_dropped = merge_task_fields(task, changes)
            dropped.extend(merge_dropped)
            if dropped:
                log_with_context(logger, "debug", "Dropped fields on task update", task_id=task_id, fields=dropped)
            if updated is not task:
                self._commit(tasks=tuple(updated if t.id == task_id else t for t in self._state.tasks))
            return updated

    def delete_task(self, task_id: str) -> bool:
        with span("board_store.delete_task"):
            remaining = tuple(task for task in self._state.tasks if task.id != task_id)
            if len(remaining) == len(self._state.tasks):
                logger.debug("delete_task ignored unknown task", extra={"task_id": task_id})
                return False
            self._commit(tasks=remaining)
            logger.info("Task deleted", extra={"task_id": task_id})
            return True

    def move_task(self, task_id: str, target_column_id: str, before_task_id: str | None = None) -> tuple[Task, ...]:
        """Move a task into a column, before an anchor task or at the end.

        Returns:
            The global task order after the move
        """
        with span("board_store.move_task"):
            if target_column_id not in self._state.column_ids():
                logger.info(
                    "move_task ignored unknown column", extra={"task_id": task_id, "column_id": target_column_id}
                )
                return self._state.tasks
            tasks = ordering.move_task(self._state.tasks, task_id, target_column_id, before_task_id)
            return self._commit(tasks=tasks).tasks

    def move_task_to_index(self, task_id: str, column_id: str, index: int) -> tuple[Task, ...]:
        """Move a task so it lands at ``index`` among the column's tasks."""
        with span("board_store.move_task_to_index"):
            if column_id not in self._state.column_ids():
                logger.info("move_task_to_index ignored unknown column", extra={"column_id": column_id})
                return self._state.tasks
            tasks = ordering.move_task_to_index(self._state.tasks, task_id, column_id, index)
            return self._commit(tasks=tasks).tasks

    def reorder_tasks(self, column_id: str, start_index: int, end_index: int) -> tuple[Task, ...]:
        """Reorder within one column by positions, as a drag library reports them."""
        with span("board_store.reorder_tasks"):
            tasks = ordering.reorder_within_column(self._state.tasks, column_id, start_index, end_index)
            return self._commit(tasks=tasks).tasks

    # --- reads and filters ---------------------------------------------------

    def get_filtered_tasks(self) -> list[Task]:
        """Tasks of the current project that pass the active filter, in board order."""
        current = self._state.current_project_id
        in_project = (task for task in self._state.tasks if task.project_id == current)
        return filter_service.filter_tasks(in_project, self._state.filters)

    def get_tasks_by_status(self, column_id: str) -> list[Task]:
        """Filtered tasks of one column, in board order."""
        return [task for task in self.get_filtered_tasks() if task.column_id == column_id]

    def set_filters(self, filters: TaskFilter | Mapping[str, Any]) -> TaskFilter:
        """Replace the active filter.

        Raises:
            pydantic.ValidationError: If a mapping names an unknown priority
        """
        task_filter = filters if isinstance(filters, TaskFilter) else TaskFilter.model_validate(dict(filters))
        self._commit(filters=task_filter)
        logger.debug("Filters set", extra={"filters": task_filter.model_dump(mode="json")})
        return task_filter

    def clear_filters(self) -> None:
        self._commit(filters=TaskFilter())

    # --- columns -------------------------------------------------------------

    def get_column_by_id(self, column_id: str) -> Column | None:
        return next((column for column in self._state.columns if column.id == column_id), None)

    def add_column(self, title: str) -> Column:
        """Append a new column to the board."""
        with span("board_store.add_column"):
            column = create_column(title, position=len(self._state.columns), id_generator=self._id_generator)
            self._commit(columns=(*self._state.columns, column))
            logger.info("Column added", extra={"column_id": column.id})
            return column

    def rename_column(self, column_id: str, title: str) -> Column | None:
        with span("board_store.rename_column"):
            column = self.get_column_by_id(column_id)
            if column is None:
                logger.debug("rename_column ignored unknown column", extra={"column_id": column_id})
                return None
            renamed = column.model_copy(update={"title": title})
            self._commit(columns=tuple(renamed if c.id == column_id else c for c in self._state.columns))
            return renamed

    def delete_column(self, column_id: str) -> bool:
        """Delete a column, moving its tasks to the default (first) column.

        Returns:
            False if the column is unknown or is the default column
        """
        with span("board_store.delete_column"):
            default_column_id = self._state.default_column_id
            if column_id == default_column_id:
                logger.info("Refusing to delete the default column", extra={"column_id": column_id})
                return False
            if column_id not in self._state.column_ids():
                logger.debug("delete_column ignored unknown column", extra={"column_id": column_id})
                return False

            tasks = tuple(
                task.model_copy(update={"column_id": default_column_id}) if task.column_id == column_id else task
                for task in self._state.tasks
            )
            columns = ordering.renumber_columns([c for c in self._state.columns if c.id != column_id])
            self._commit(tasks=tasks, columns=columns)
            log_with_context(
                logger, "info", "Column deleted", column_id=column_id, reassigned_to=default_column_id
            )
            return True

    def move_column(self, column_id: str, target_index: int) -> tuple[Column, ...]:
        with span("board_store.move_column"):
            return self._commit(columns=ordering.move_column(self._state.columns, column_id, target_index)).columns

    # --- projects ------------------------------------------------------------

    def get_project_by_id(self, project_id: str) -> Project | None:
        return next((project for project in self._state.projects if project.id == project_id), None)

    def add_project(self, name: str) -> Project:
        with span("board_store.add_project"):
            project = create_project(name, id_generator=self._id_generator)
            self._commit(projects=(*self._state.projects, project))
            logger.info("Project added", extra={"project_id": project.id})
            return project

    def rename_project(self, project_id: str, name: str) -> Project | None:
        with span("board_store.rename_project"):
            project = self.get_project_by_id(project_id)
            if project is None:
                logger.debug("rename_project ignored unknown project", extra={"project_id": project_id})
                return None
            renamed = project.model_copy(update={"name": name})
            self._commit(projects=tuple(renamed if p.id == project_id else p for p in self._state.projects))
            return renamed

    def delete_project(self, project_id: str) -> bool:
        """Delete a project, moving its tasks to the default project.

        Returns:
            False if the project is unknown or is the default project
        """
        with span("board_store.delete_project"):
            if project_id == constants.DEFAULT_PROJECT_ID:
                logger.info("Refusing to delete the default project")
                return False
            if project_id not in self._state.project_ids():
                logger.debug("delete_project ignored unknown project", extra={"project_id": project_id})
                return False

            tasks = tuple(
                task.model_copy(update={"project_id": constants.DEFAULT_PROJECT_ID})
                if task.project_id == project_id
                else task
                for task in self._state.tasks
            )
            projects = tuple(p for p in self._state.projects if p.id != project_id)
            current = self._state.current_project_id
            if current == project_id:
                current = constants.DEFAULT_PROJECT_ID
            self._commit(tasks=tasks, projects=projects, current_project_id=current)
            logger.info("Project deleted", extra={"project_id": project_id})
            return True

    def set_current_project(self, project_id: str) -> bool:
        if project_id not in self._state.project_ids():
            logger.debug("set_current_project ignored unknown project", extra={"project_id": project_id})
            return False
        self._commit(current_project_id=project_id)
        return True

    # --- board ---------------------------------------------------------------

    def clear_board(self) -> int:
        """Delete every task of the current project.

        Returns:
            Number of tasks removed
        """
        with span("board_store.clear_board"):
            current = self._state.current_project_id
            remaining = tuple(task for task in self._state.tasks if task.project_id != current)
            removed = len(self._state.tasks) - len(remaining)
            self._commit(tasks=remaining)
            log_with_context(logger, "info", "Board cleared", project_id=current, removed=removed)
            return removed

    def get_stats(self, today: date | None = None) -> BoardStats:
        """Count the current project's tasks per column and priority.

        The last column is treated as the done column: its tasks count as
        completed and are never overdue.

        Args:
            today: Reference date for overdue checks (defaults to today)
        """
        today = today or date.today()
        current = self._state.current_project_id
        tasks = [task for task in self._state.tasks if task.project_id == current]
        by_column = Counter(task.column_id for task in tasks)
        by_priority = Counter(task.priority for task in tasks)
        done_column_id = self._state.columns[-1].id if self._state.columns else None

        return BoardStats(
            project_id=current,
            total=len(tasks),
            by_column=[
                ColumnStats(column_id=column.id, title=column.title, task_count=by_column[column.id])
                for column in self._state.columns
            ],
            by_priority={priority.value: by_priority[priority] for priority in TaskPriority},
            overdue=sum(
                1
                for task in tasks
                if task.due_date is not None and task.due_date < today and task.column_id != done_column_id
            ),
            completed=by_column[done_column_id] if done_column_id is not None else 0,
        )
