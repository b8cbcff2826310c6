"""Load-time reconciliation of persisted board state.

Persisted state may come from an older schema, a partially written file, or
a remote service that lost part of the board. ``reconcile`` runs an ordered
pipeline of ``RawState -> RawState`` steps that migrate, repair and fill in
defaults, then builds a ``BoardState``. Each step is a pure function (the
pipeline deep-copies its input) and running the pipeline on its own output
changes nothing.
"""

import copy
import functools
import logging
import math
from collections import Counter
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from taskboard.core.config import constants, settings
from taskboard.core.dates import parse_calendar_date
from taskboard.core.ids import CounterIdGenerator, IdGenerator, uuid_id_generator
from taskboard.core.logging import log_with_context, span
from taskboard.domain.board import BoardState, RawState
from taskboard.domain.factories import normalize_task_keys
from taskboard.domain.filter import TaskFilter
from taskboard.domain.task import Task, TaskPriority
from taskboard.services import seed_data


logger = logging.getLogger(__name__)


ReconcileStep = Callable[[RawState], RawState]

TASK_FIELDS = frozenset(Task.model_fields)
COLUMN_FIELDS = frozenset({"id", "title", "position", "task_count"})
PROJECT_FIELDS = frozenset({"id", "name", "created_at", "task_count"})

_TOP_LEVEL_ALIASES = {"currentProjectId": "current_project_id", "filter": "filters"}
_FILTER_ALIASES = {"dateRange": "date_range"}
_DATE_RANGE_ALIASES = {"hasDueDate": "has_due_date"}
_COLUMN_ALIASES = {"order": "position", "name": "title"}
_LEGACY_COLUMN_IDS = {"doing": "in-progress"}

_TIMESTAMP_ADAPTER = TypeAdapter(datetime)


def _rename_keys(record: dict[str, Any], aliases: Mapping[str, str]) -> dict[str, Any]:
    for old, new in aliases.items():
        if old in record:
            value = record.pop(old)
            record.setdefault(new, value)
    return record


def _records(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list | tuple):
        return []
    return [dict(item) for item in value if isinstance(item, Mapping)]


def _ref(value: object) -> str | None:
    """Normalize an id reference: ints become strings, blanks become None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


# --- step 0: shape and legacy migration -------------------------------------


def normalize_shape(raw: RawState) -> RawState:
    """Coerce the top level into lists of records and flatten embedded tasks.

    Older boards stored each column's tasks inside the column record; those
    are moved into the global task list, column by column.
    """
    state = _rename_keys(dict(raw), _TOP_LEVEL_ALIASES)

    tasks = _records(state.get("tasks"))
    columns = _records(state.get("columns"))
    for column in columns:
        embedded = column.pop("tasks", None)
        for task in _records(embedded):
            if _ref(task.get("column_id")) is None and _ref(task.get("columnId")) is None:
                task["column_id"] = column.get("id")
            tasks.append(task)

    state["tasks"] = tasks
    state["columns"] = columns
    state["projects"] = _records(state.get("projects"))
    if "filters" in state and not isinstance(state["filters"], Mapping):
        state.pop("filters")
    return state


def migrate_legacy_fields(raw: RawState) -> RawState:
    """Rename camelCase and legacy keys to the current schema."""
    state = dict(raw)

    legacy_search = state.pop("searchQuery", None)
    if "filters" not in state and isinstance(legacy_search, str):
        state["filters"] = {"search": legacy_search}

    existing_ids = {_ref(column.get("id")) for column in state["columns"]}
    # A legacy id is only renamed when its replacement is not taken already
    remap = {old: new for old, new in _LEGACY_COLUMN_IDS.items() if not (old in existing_ids and new in existing_ids)}

    tasks = []
    for task in state["tasks"]:
        migrated = normalize_task_keys(task)
        legacy_assignee = migrated.pop("assigneeId", None)
        if "assignees" not in migrated and _ref(legacy_assignee) is not None:
            migrated["assignees"] = [_ref(legacy_assignee)]
        column_ref = _ref(migrated.get("column_id"))
        if column_ref in remap:
            migrated["column_id"] = remap[column_ref]
        tasks.append(migrated)
    state["tasks"] = tasks

    columns = []
    for column in state["columns"]:
        migrated = _rename_keys(dict(column), _COLUMN_ALIASES)
        column_ref = _ref(migrated.get("id"))
        if column_ref in remap:
            migrated["id"] = remap[column_ref]
        columns.append(migrated)
    state["columns"] = columns

    if isinstance(state.get("filters"), Mapping):
        filters = _rename_keys(dict(state["filters"]), _FILTER_ALIASES)
        if isinstance(filters.get("date_range"), Mapping):
            filters["date_range"] = _rename_keys(dict(filters["date_range"]), _DATE_RANGE_ALIASES)
        state["filters"] = filters
    return state


def _dedupe(records: list[dict[str, Any]], kind: str, id_generator: IdGenerator) -> list[dict[str, Any]]:
    seen: set[str] = set()
    kept = []
    for record in records:
        record_id = _ref(record.get("id"))
        if record_id is None:
            record_id = id_generator()
            log_with_context(logger, "warning", "Assigned id to record without one", kind=kind, record_id=record_id)
        if record_id in seen:
            log_with_context(logger, "warning", "Dropped record with duplicate id", kind=kind, record_id=record_id)
            continue
        seen.add(record_id)
        kept.append({**record, "id": record_id})
    return kept


def assign_missing_ids(raw: RawState, *, id_generator: IdGenerator = uuid_id_generator) -> RawState:
    """Give id-less records an id and drop later duplicates of an id."""
    state = dict(raw)
    if isinstance(id_generator, CounterIdGenerator):
        existing = (_ref(record.get("id")) for kind in ("tasks", "columns", "projects") for record in state[kind])
        id_generator.advance_past(record_id for record_id in existing if record_id is not None)
    state["tasks"] = _dedupe(state["tasks"], "task", id_generator)
    state["columns"] = _dedupe(state["columns"], "column", id_generator)
    state["projects"] = _dedupe(state["projects"], "project", id_generator)
    return state


# --- steps 1-3: structure and defaults --------------------------------------


def install_default_columns(raw: RawState) -> RawState:
    """Install the default column set when the board has no columns."""
    if raw["columns"]:
        return raw
    logger.info("No columns in loaded state, installing defaults")
    return {**raw, "columns": seed_data.default_columns()}


def ensure_default_project(raw: RawState) -> RawState:
    """Make sure the default project exists, first in the list."""
    if any(project["id"] == constants.DEFAULT_PROJECT_ID for project in raw["projects"]):
        return raw
    logger.info("Default project missing from loaded state, installing it")
    return {**raw, "projects": [seed_data.default_project(), *raw["projects"]]}


def assign_orphan_tasks(raw: RawState) -> RawState:
    """Assign tasks without a project reference to the default project."""
    orphans = [task for task in raw["tasks"] if _ref(task.get("project_id")) is None]
    if not orphans:
        return raw
    logger.info("Assigning tasks without a project to the default project", extra={"count": len(orphans)})
    tasks = [
        {**task, "project_id": constants.DEFAULT_PROJECT_ID} if _ref(task.get("project_id")) is None else task
        for task in raw["tasks"]
    ]
    return {**raw, "tasks": tasks}


def install_seed_tasks(raw: RawState, *, enabled: bool = True) -> RawState:
    """Install the example tasks when the board has none."""
    if raw["tasks"] or not enabled:
        return raw
    logger.info("No tasks in loaded state, installing example tasks")
    return {**raw, "tasks": seed_data.seed_tasks()}


# --- steps 4-5: field cleanup -----------------------------------------------


def strip_deprecated_fields(raw: RawState) -> RawState:
    """Remove fields that are no longer part of the schema."""
    stripped: Counter[str] = Counter()

    def _keep(record: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
        extra = record.keys() - allowed
        stripped.update(extra)
        return {key: value for key, value in record.items() if key in allowed}

    state = {
        **raw,
        "tasks": [_keep(task, TASK_FIELDS) for task in raw["tasks"]],
        "columns": [_keep(column, COLUMN_FIELDS) for column in raw["columns"]],
        "projects": [_keep(project, PROJECT_FIELDS) for project in raw["projects"]],
    }
    if stripped:
        logger.info("Stripped deprecated fields", extra={"fields": sorted(stripped)})
    return state


def _valid_timestamp(value: object) -> bool:
    if isinstance(value, datetime):
        return True
    if not isinstance(value, str):
        return False
    try:
        _TIMESTAMP_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list | tuple):
        return []
    return [str(item) for item in value if item is not None]


def _repair_task(task: dict[str, Any], *, column_ids: set[str], default_column_id: str) -> dict[str, Any]:
    repaired = dict(task)

    if not isinstance(repaired.get("title"), str):
        repaired["title"] = constants.DEFAULT_TASK_TITLE
    if not isinstance(repaired.get("description"), str):
        repaired["description"] = constants.DEFAULT_TASK_DESCRIPTION

    for field in ("start_date", "due_date"):
        if field in repaired:
            parsed = parse_calendar_date(repaired[field])
            repaired[field] = parsed.isoformat() if parsed else None

    progress = repaired.get("progress", 0)
    if isinstance(progress, bool) or not isinstance(progress, int | float) or not math.isfinite(progress):
        progress = 0
    repaired["progress"] = max(constants.PROGRESS_MIN, min(constants.PROGRESS_MAX, int(progress)))

    if repaired.get("priority") not in {priority.value for priority in TaskPriority}:
        repaired["priority"] = TaskPriority.MEDIUM.value

    for field in ("assignees", "tags"):
        if field in repaired:
            repaired[field] = _string_list(repaired[field])

    if "created_at" in repaired and not _valid_timestamp(repaired["created_at"]):
        repaired["created_at"] = datetime.now(UTC).isoformat()

    column_ref = _ref(repaired.get("column_id"))
    repaired["column_id"] = column_ref if column_ref in column_ids else default_column_id
    repaired["project_id"] = _ref(repaired.get("project_id")) or constants.DEFAULT_PROJECT_ID
    return repaired


def repair_field_values(raw: RawState) -> RawState:
    """Repair values the schema cannot accept and dangling references.

    Unparsable dates become None, progress is clamped to 0-100, unknown
    priorities become medium, and tasks pointing at a missing column or
    project are moved to the default column or project.
    """
    columns = []
    for position, column in enumerate(raw["columns"]):
        title = column.get("title")
        columns.append({**column, "title": title if isinstance(title, str) else "Untitled", "position": position})

    projects = []
    for project in raw["projects"]:
        repaired = dict(project)
        if not isinstance(repaired.get("name"), str):
            repaired["name"] = "Untitled project"
        if "created_at" in repaired and not _valid_timestamp(repaired["created_at"]):
            repaired.pop("created_at")
        projects.append(repaired)

    column_ids = {column["id"] for column in columns}
    project_ids = {project["id"] for project in projects}
    default_column_id = columns[0]["id"]

    tasks = []
    repaired_count = 0
    for task in raw["tasks"]:
        repaired = _repair_task(task, column_ids=column_ids, default_column_id=default_column_id)
        if repaired["project_id"] not in project_ids:
            repaired["project_id"] = constants.DEFAULT_PROJECT_ID
        if repaired != task:
            repaired_count += 1
        tasks.append(repaired)
    if repaired_count:
        logger.warning("Repaired loaded tasks", extra={"count": repaired_count})

    return {**raw, "tasks": tasks, "columns": columns, "projects": projects}


# --- steps 6-8: derived values and pointers ---------------------------------


def recompute_task_counts(raw: RawState) -> RawState:
    """Recompute column and project task counts from the task list."""
    by_column = Counter(task["column_id"] for task in raw["tasks"])
    by_project = Counter(task["project_id"] for task in raw["tasks"])
    return {
        **raw,
        "columns": [{**column, "task_count": by_column[column["id"]]} for column in raw["columns"]],
        "projects": [{**project, "task_count": by_project[project["id"]]} for project in raw["projects"]],
    }


def reset_current_project(raw: RawState) -> RawState:
    """Point the current project at the first project if it is missing or dangling."""
    project_ids = [project["id"] for project in raw["projects"]]
    current = _ref(raw.get("current_project_id"))
    if current in project_ids:
        return {**raw, "current_project_id": current}
    logger.info("Current project missing, resetting", extra={"previous": current, "project_id": project_ids[0]})
    return {**raw, "current_project_id": project_ids[0]}


def install_empty_filter(raw: RawState) -> RawState:
    """Install the match-all filter when the filter is absent or unreadable."""
    filters = raw.get("filters")
    if isinstance(filters, Mapping):
        try:
            return {**raw, "filters": TaskFilter.model_validate(filters).model_dump(mode="json")}
        except ValidationError:
            logger.warning("Discarding unreadable filter from loaded state")
    return {**raw, "filters": TaskFilter().model_dump(mode="json")}


def build_pipeline(
    *,
    id_generator: IdGenerator = uuid_id_generator,
    seed_example_tasks: bool = True,
) -> list[tuple[str, ReconcileStep]]:
    """Return the ordered reconciliation steps."""
    return [
        ("normalize_shape", normalize_shape),
        ("migrate_legacy_fields", migrate_legacy_fields),
        ("assign_missing_ids", functools.partial(assign_missing_ids, id_generator=id_generator)),
        ("install_default_columns", install_default_columns),
        ("ensure_default_project", ensure_default_project),
        ("assign_orphan_tasks", assign_orphan_tasks),
        ("install_seed_tasks", functools.partial(install_seed_tasks, enabled=seed_example_tasks)),
        ("strip_deprecated_fields", strip_deprecated_fields),
        ("repair_field_values", repair_field_values),
        ("recompute_task_counts", recompute_task_counts),
        ("reset_current_project", reset_current_project),
        ("install_empty_filter", install_empty_filter),
    ]


def run_pipeline(
    raw: object,
    *,
    id_generator: IdGenerator = uuid_id_generator,
    seed_example_tasks: bool | None = None,
) -> RawState:
    """Run every reconciliation step over a copy of ``raw``.

    Args:
        raw: Loaded state; None or a non-mapping value counts as empty
        id_generator: Source of ids for records that lack one
        seed_example_tasks: Install example tasks on an empty board
            (defaults to ``settings.seed_example_tasks``)

    Returns:
        Reconciled raw state
    """
    seed = settings.seed_example_tasks if seed_example_tasks is None else seed_example_tasks
    state: RawState = copy.deepcopy(dict(raw)) if isinstance(raw, Mapping) else {}
    for name, step in build_pipeline(id_generator=id_generator, seed_example_tasks=seed):
        with span(f"reconciler.{name}"):
            state = step(state)
    return state


def drop_invalid_records(raw: RawState, error: ValidationError) -> RawState:
    """Remove the tasks, columns and projects that ``error`` reports as invalid."""
    invalid: dict[str, set[int]] = {"tasks": set(), "columns": set(), "projects": set()}
    for detail in error.errors():
        loc = detail["loc"]
        if len(loc) >= 2 and loc[0] in invalid and isinstance(loc[1], int):
            invalid[loc[0]].add(loc[1])

    state = dict(raw)
    for kind, indexes in invalid.items():
        if indexes:
            log_with_context(logger, "warning", "Dropped invalid records", kind=kind, count=len(indexes))
            state[kind] = [record for index, record in enumerate(raw[kind]) if index not in indexes]
    return state


def reconcile(
    raw: object,
    *,
    id_generator: IdGenerator = uuid_id_generator,
    seed_example_tasks: bool | None = None,
) -> BoardState:
    """Turn loaded state into a valid, non-empty board snapshot.

    Never raises for bad input. Records that still fail validation after
    repair are dropped and the rest of the board is kept; only if that does
    not help either does the board fall back to the defaults.
    """
    with span("reconciler.reconcile"):
        state = run_pipeline(raw, id_generator=id_generator, seed_example_tasks=seed_example_tasks)
        try:
            return BoardState.from_raw(state)
        except ValidationError as e:
            logger.error("Reconciled state failed validation, dropping invalid records", extra={"error": str(e)})
            pruned = drop_invalid_records(state, e)

        # The board was not empty, so a pruned board is never reseeded
        state = run_pipeline(pruned, id_generator=id_generator, seed_example_tasks=False)
        try:
            return BoardState.from_raw(state)
        except ValidationError as e:
            logger.error("Reconciled state failed validation, falling back to defaults", extra={"error": str(e)})
            return BoardState.from_raw(
                run_pipeline({}, id_generator=id_generator, seed_example_tasks=seed_example_tasks)
            )
