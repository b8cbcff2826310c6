from taskboard.services import (
    board_store,
    filter_service,
    ordering,
    reconciler,
)


__all__ = [
    "board_store",
    "filter_service",
    "ordering",
    "reconciler",
]
