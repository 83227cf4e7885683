"""Formatting helpers shared by the report renderers and console summaries."""

from __future__ import annotations

from datetime import datetime


def format_duration(seconds: float | None) -> str:
    """Render a duration the way the reports show it.

    Sub-second values are shown in milliseconds, values under a minute in
    seconds, everything else in minutes.

    Args:
        seconds: Duration in seconds. ``None`` renders as ``0ms``.

    Returns:
        A short human-readable string such as ``"250ms"``, ``"4.20s"`` or
        ``"1.50m"``.
    """
    if not seconds or seconds < 0:
        return "0ms"
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    return f"{seconds / 60:.2f}m"


def format_percentage(value: float) -> str:
    """Render a 0-100 percentage with two decimals."""
    return f"{value:.2f}%"


def format_timestamp(
    value: datetime | None, default: str | None = "In Progress"
) -> str | None:
    """ISO-8601 timestamp, or *default* when the value is missing."""
    return value.isoformat() if value is not None else default


def markdown_cell(value: object) -> str:
    """Escape a value for use inside a Markdown table cell."""
    return str(value).replace("|", "\\|").replace("\n", " ")
