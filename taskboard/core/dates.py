"""Total date parsing helpers."""

from datetime import date, datetime


def parse_calendar_date(value: object) -> date | None:
    """Parse a calendar date, returning None for anything that is not one.

    Accepts ``date`` and ``datetime`` objects and ISO strings
    (``2024-03-01`` or a full ISO timestamp). Never raises.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_valid_date_value(value: object) -> bool:
    """Return True if value is None (clears the date) or parses to a date."""
    return value is None or parse_calendar_date(value) is not None
