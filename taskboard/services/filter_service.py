"""Filter evaluation over tasks.

Pure functions; nothing here touches the store.
"""

from collections.abc import Iterable
from datetime import date

from taskboard.core.dates import parse_calendar_date
from taskboard.domain.filter import DateRange, TaskFilter
from taskboard.domain.task import Task


def _matches_search(task: Task, search: str) -> bool:
    needle = search.lower()
    return needle in (task.title or "").lower() or needle in (task.description or "").lower()


def _matches_date_range(task: Task, date_range: DateRange) -> bool:
    # Tasks with no (or an unparsable) due date pass start/end bounds;
    # only has_due_date excludes them.
    due = parse_calendar_date(task.due_date)
    if due is None:
        return not date_range.has_due_date

    start = parse_calendar_date(date_range.start)
    if start is not None and due < start:
        return False
    end = parse_calendar_date(date_range.end)
    return not (end is not None and due > end)


def matches(task: Task, task_filter: TaskFilter) -> bool:
    """Return True if the task passes every active clause of the filter.

    Clauses are checked in order (search, priorities, statuses, date range)
    and evaluation stops at the first failure.
    """
    if task_filter.search and not _matches_search(task, task_filter.search):
        return False
    if task_filter.priorities and task.priority not in task_filter.priorities:
        return False
    if task_filter.statuses and task.column_id not in task_filter.statuses:
        return False
    return _matches_date_range(task, task_filter.date_range)


def filter_tasks(tasks: Iterable[Task], task_filter: TaskFilter) -> list[Task]:
    """Return the tasks passing the filter, preserving order."""
    if task_filter.is_empty():
        return list(tasks)
    return [task for task in tasks if matches(task, task_filter)]


def _intersect(a: frozenset, b: frozenset) -> frozenset | None:
    """Intersect two allowed-value sets where empty means unconstrained.

    Returns None when both are constrained and share no value.
    """
    if not a:
        return b
    if not b:
        return a
    return (a & b) or None


def _later(a: date | None, b: date | None) -> date | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _earlier(a: date | None, b: date | None) -> date | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _combine_search(a: str, b: str) -> str:
    if not a or not b:
        return a or b
    lower_a, lower_b = a.lower(), b.lower()
    if lower_b in lower_a:
        return a
    if lower_a in lower_b:
        return b
    msg = f"Cannot combine search terms {a!r} and {b!r} into one substring clause"
    raise ValueError(msg)


def combine_filters(first: TaskFilter, second: TaskFilter) -> TaskFilter | None:
    """AND two filters clause by clause.

    For every task, ``matches(task, combined)`` equals
    ``matches(task, first) and matches(task, second)``.

    Returns:
        The combined filter, or None when no task can match both
        (disjoint priority or status sets)

    Raises:
        ValueError: If both filters search for text and neither term contains
            the other; use ``matches_all`` for such pairs
    """
    priorities = _intersect(first.priorities, second.priorities)
    statuses = _intersect(first.statuses, second.statuses)
    if priorities is None or statuses is None:
        return None

    return TaskFilter(
        search=_combine_search(first.search, second.search),
        priorities=priorities,
        statuses=statuses,
        date_range=DateRange(
            start=_later(first.date_range.start, second.date_range.start),
            end=_earlier(first.date_range.end, second.date_range.end),
            has_due_date=first.date_range.has_due_date or second.date_range.has_due_date,
        ),
    )


def matches_all(task: Task, filters: Iterable[TaskFilter]) -> bool:
    """Return True if the task matches every filter."""
    return all(matches(task, task_filter) for task_filter in filters)
