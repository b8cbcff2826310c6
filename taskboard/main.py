"""taskboard - kanban task board engine with durable state."""

import logging

from taskboard.core.config import settings
from taskboard.core.logging import configure_logfire
from taskboard.services.board_session import BoardSession
from taskboard.services.state_stores import StateStore, create_state_store


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Check that the selected state backend has the settings it needs.

    Raises:
        ValueError: If the http backend is selected without a service URL
    """
    logger.info("startup_validation_begin", extra={"backend": settings.state_backend})
    if settings.state_backend == "http":
        settings.require_credential("remote_state_url", "Remote state service")
    logger.info("startup_validation_complete", extra={"status": "ok"})


async def open_board(state_store: StateStore | None = None) -> BoardSession:
    """Configure logging, pick the durable store and open the board.

    Args:
        state_store: Store to use instead of the one selected by settings

    Returns:
        Session over the loaded and reconciled board
    """
    # Configure logging first so validation logs are captured
    configure_logfire()

    if state_store is None:
        validate_startup_configuration()
        state_store = create_state_store()

    session = await BoardSession.open(state_store)
    stats = session.get_stats()
    logger.info(
        "Board opened",
        extra={"backend": type(state_store).__name__, "project_id": stats.project_id, "total": stats.total},
    )
    return session
