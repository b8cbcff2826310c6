"""taskboard - kanban task board engine."""
