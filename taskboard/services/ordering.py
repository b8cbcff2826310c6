"""Move and reorder primitives over the global task order and the column list.

All tasks live in one flat ordered sequence. Cross-column moves and
intra-column reorders are the same operation: remove the task, then splice
it back in before an anchor task (or at the end). Recovering one column's
tasks is an O(n) scan, which is fine for boards of hundreds of tasks.

Every function returns a new tuple and never mutates its input.
"""

import logging
from collections.abc import Sequence

from taskboard.domain.column import Column
from taskboard.domain.task import Task


logger = logging.getLogger(__name__)

# Anchor that never matches a task id, forcing an append
_APPEND = "\x00append"


def column_slice(tasks: Sequence[Task], column_id: str) -> list[Task]:
    """Return the tasks of one column in board order."""
    return [task for task in tasks if task.column_id == column_id]


def _index_of(tasks: Sequence[Task], task_id: str) -> int | None:
    for index, task in enumerate(tasks):
        if task.id == task_id:
            return index
    return None


def move_task(
    tasks: Sequence[Task],
    task_id: str,
    target_column_id: str,
    before_task_id: str | None = None,
) -> tuple[Task, ...]:
    """Move a task to a column, placing it before an anchor task.

    Args:
        tasks: Global task order
        task_id: Task to move; unknown ids leave the order unchanged
        target_column_id: Column the task ends up in
        before_task_id: Anchor; the task is inserted immediately before it.
            Unknown anchors fall back to appending at the end.

    Returns:
        New global task order
    """
    index = _index_of(tasks, task_id)
    if index is None:
        logger.debug("move_task ignored unknown task", extra={"task_id": task_id})
        return tuple(tasks)

    task = tasks[index]
    moved = task if task.column_id == target_column_id else task.model_copy(update={"column_id": target_column_id})

    # Anchored on itself, or no anchor within its own column: keep the slot
    if before_task_id == task_id or (before_task_id is None and task.column_id == target_column_id):
        return (*tasks[:index], moved, *tasks[index + 1 :])

    remaining = [*tasks[:index], *tasks[index + 1 :]]
    anchor_index = _index_of(remaining, before_task_id) if before_task_id is not None else None
    if anchor_index is None:
        if before_task_id not in (None, _APPEND):
            logger.debug("move_task anchor not found, appending", extra={"task_id": task_id, "anchor": before_task_id})
        remaining.append(moved)
    else:
        remaining.insert(anchor_index, moved)
    return tuple(remaining)


def anchor_for_index(tasks: Sequence[Task], task_id: str, column_id: str, index: int) -> str | None:
    """Translate a drop position inside a column into an anchor task id.

    ``index`` counts the column's tasks with the moving task taken out, as a
    drag-and-drop library reports it, and is clamped to the column. An
    index at the end anchors on whatever follows the column's last task, or
    None (append) if nothing does. Dropping a task on its current slot
    yields its own id, which ``move_task`` treats as a no-op.
    """
    in_column = column_slice(tasks, column_id)
    others = [task for task in in_column if task.id != task_id]
    index = max(0, min(index, len(others)))
    if _index_of(in_column, task_id) == index:
        return task_id
    if index == len(others):
        if not others:
            return None
        # Dropping after the last task of the column: anchor on whatever
        # follows that task in the global order, if anything does
        last_index = _index_of(tasks, others[-1].id)
        following = [task for task in tasks[last_index + 1 :] if task.id != task_id]
        return following[0].id if following else None
    return others[index].id


def move_task_to_index(tasks: Sequence[Task], task_id: str, column_id: str, index: int) -> tuple[Task, ...]:
    """Move a task so it becomes the ``index``-th task of ``column_id``."""
    anchor = anchor_for_index(tasks, task_id, column_id, index)
    # No anchor means "after everything", even when staying in the same column
    return move_task(tasks, task_id, column_id, anchor if anchor is not None else _APPEND)


def reorder_within_column(
    tasks: Sequence[Task], column_id: str, start_index: int, end_index: int
) -> tuple[Task, ...]:
    """Move the column's task at ``start_index`` to ``end_index`` within the column."""
    in_column = column_slice(tasks, column_id)
    if not 0 <= start_index < len(in_column):
        logger.debug("reorder ignored out-of-range index", extra={"column_id": column_id, "start_index": start_index})
        return tuple(tasks)
    return move_task_to_index(tasks, in_column[start_index].id, column_id, end_index)


def move_column(columns: Sequence[Column], column_id: str, target_index: int) -> tuple[Column, ...]:
    """Move a column to ``target_index`` (clamped) and renumber positions."""
    index = next((i for i, column in enumerate(columns) if column.id == column_id), None)
    if index is None:
        logger.debug("move_column ignored unknown column", extra={"column_id": column_id})
        return tuple(columns)

    remaining = [*columns[:index], *columns[index + 1 :]]
    target = max(0, min(target_index, len(remaining)))
    remaining.insert(target, columns[index])
    return renumber_columns(remaining)


def renumber_columns(columns: Sequence[Column]) -> tuple[Column, ...]:
    """Set each column's position to its index."""
    return tuple(
        column if column.position == position else column.model_copy(update={"position": position})
        for position, column in enumerate(columns)
    )
