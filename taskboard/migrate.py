"""Migrate a persisted board to the current state format.

Loads the board from the configured (or given) store, runs the reconciler
and writes the result back. JSON files are backed up before they are
overwritten. The migration is idempotent - safe to re-run multiple times.
"""

import argparse
import asyncio
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from taskboard.core.config import settings
from taskboard.services.reconciler import reconcile
from taskboard.services.state_stores import JsonFileStateStore, SqliteStateStore, StateStore, create_state_store


logger = logging.getLogger(__name__)


def create_backup(*, path: Path) -> Path:
    """Copy a state file next to itself with a timestamp suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.parent / f"{path.stem}_backup_{timestamp}{path.suffix}"
    shutil.copy2(path, backup_path)
    logger.info("Created backup at: %s", backup_path)
    return backup_path


async def run_migration(state_store: StateStore, *, dry_run: bool = False) -> dict[str, Any]:
    """Reconcile the stored board and save it back unless nothing changed.

    Returns:
        Summary with task, column and project counts and whether a write happened
    """
    raw = await state_store.load()
    state = reconcile(raw)
    migrated = state.to_raw()
    changed = raw != migrated

    results: dict[str, Any] = {
        "tasks": len(state.tasks),
        "columns": len(state.columns),
        "projects": len(state.projects),
        "changed": changed,
        "written": False,
    }
    if not changed or dry_run:
        return results

    if isinstance(state_store, JsonFileStateStore) and state_store.path.exists():
        results["backup"] = str(create_backup(path=state_store.path))

    if not await state_store.save(migrated):
        msg = "Saving the migrated board failed"
        raise RuntimeError(msg)
    results["written"] = True
    return results


def _build_store(args: argparse.Namespace) -> StateStore:
    if args.state_file:
        return JsonFileStateStore(args.state_file)
    if args.db_path:
        return SqliteStateStore(db_path=args.db_path)
    return create_state_store()


async def _migrate(args: argparse.Namespace) -> dict[str, Any]:
    state_store = _build_store(args)
    try:
        return await run_migration(state_store, dry_run=args.dry_run)
    finally:
        if isinstance(state_store, SqliteStateStore):
            await state_store.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the migration command."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Migrate a persisted board to the current state format")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="Path to a JSON state file (default: uses settings.state_backend)",
    )
    source.add_argument(
        "--db-path",
        type=str,
        default=None,
        help=f"Path to a SQLite state database; the board key is settings.board_id ({settings.board_id})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing anything",
    )
    args = parser.parse_args(argv)

    try:
        results = asyncio.run(_migrate(args))
    except Exception as e:
        logger.error("Migration failed: %s", e)
        return 1

    logger.info("Migration Summary:")
    for key, value in results.items():
        logger.info("  %s: %s", key, value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
