"""Default board structure and example tasks installed on first run."""

from typing import Any

from taskboard.core.config import constants


DEFAULT_COLUMNS: tuple[dict[str, Any], ...] = (
    {"id": "todo", "title": "To Do", "position": 0},
    {"id": "in-progress", "title": "In Progress", "position": 1},
    {"id": "review", "title": "Review", "position": 2},
    {"id": "done", "title": "Done", "position": 3},
)

DEFAULT_PROJECT: dict[str, Any] = {
    "id": constants.DEFAULT_PROJECT_ID,
    "name": constants.DEFAULT_PROJECT_NAME,
    "created_at": "2024-01-01T00:00:00+00:00",
}

_SEED_CREATED_AT = "2024-01-01T09:00:00+00:00"

# (title, description, column, priority, progress, start, due, assignees, tags)
_SEED_ROWS: tuple[tuple[Any, ...], ...] = (
    ("Bug Fix: Login validation issue", "Users can submit the login form with an empty password.",
     "todo", "urgent", 0, None, "2024-02-05", ("alice",), ("bug", "auth")),
    ("Design onboarding screens", "Three-step welcome flow for new users.",
     "todo", "medium", 0, "2024-02-01", "2024-02-20", ("bob",), ("design",)),
    ("Write API documentation", "Document every public endpoint with examples.",
     "todo", "low", 0, None, None, (), ("docs",)),
    ("Implement drag and drop", "Move cards between columns and reorder them.",
     "in-progress", "high", 40, "2024-01-20", "2024-02-10", ("carol",), ("feature", "ui")),
    ("Set up CI pipeline", "Run the test suite on every push.",
     "in-progress", "medium", 60, "2024-01-15", None, ("dave",), ("infra",)),
    ("Add search and filters", "Search by text, filter by priority, status and due date.",
     "in-progress", "high", 25, None, "2024-02-15", ("alice", "carol"), ("feature",)),
    ("Review database schema", "Check indexes and foreign keys before launch.",
     "review", "medium", 90, "2024-01-10", "2024-01-31", ("bob",), ("backend",)),
    ("Accessibility audit", "Keyboard navigation and contrast checks.",
     "review", "low", 80, None, None, (), ("qa",)),
    ("Deploy to Production", "Release version 1.0 to the production cluster.",
     "done", "high", 100, "2024-01-05", "2024-01-12", ("dave",), ("release",)),
    ("Project kickoff meeting", "Agree on scope and milestones.",
     "done", "low", 100, None, "2024-01-03", ("alice", "bob", "carol", "dave"), ("meeting",)),
)


def default_columns() -> list[dict[str, Any]]:
    """Return fresh copies of the default column records."""
    return [dict(column) for column in DEFAULT_COLUMNS]


def default_project() -> dict[str, Any]:
    """Return a fresh copy of the default project record."""
    return dict(DEFAULT_PROJECT)


def seed_tasks() -> list[dict[str, Any]]:
    """Return the example task records, in board order.

    Ids are fixed so that reconciling the same empty state twice yields the
    same board.
    """
    return [
        {
            "id": f"seed-{number:02d}",
            "title": title,
            "description": description,
            "column_id": column_id,
            "project_id": constants.DEFAULT_PROJECT_ID,
            "priority": priority,
            "progress": progress,
            "start_date": start_date,
            "due_date": due_date,
            "assignees": list(assignees),
            "tags": list(tags),
            "created_at": _SEED_CREATED_AT,
        }
        for number, (title, description, column_id, priority, progress, start_date, due_date, assignees, tags)
        in enumerate(_SEED_ROWS, start=1)
    ]
