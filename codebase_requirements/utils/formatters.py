"""Formatting utilities for presenting data."""

from datetime import datetime


def format_duration(seconds: float) -> str:
    """Format duration for display.

    Converts seconds to human-readable format:
    - 147.5 -> '2m 27s'
    - 45 -> '45s'

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string representation
    """
    m, s = divmod(int(seconds), 60)
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"


def format_progress(done: int, total: int) -> str:
    """Format analysis progress, e.g. '3/10 (30%)'."""
    if total <= 0:
        return f"{done}/{total}"
    return f"{done}/{total} ({done * 100 // total}%)"


def format_timestamp(iso_value: str) -> str:
    """Render an ISO-8601 timestamp as 'YYYY-mm-dd HH:MM' in local time."""
    try:
        moment = datetime.fromisoformat(iso_value)
    except ValueError:
        return iso_value
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime('%Y-%m-%d %H:%M')
