"""
Utility functions for okrtree.
"""

import math
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from okrtree.constants import (
    DEFAULT_DATE_FORMATS,
    LEVEL_LABELS,
    MAX_PROGRESS,
    MIN_PROGRESS,
    NOT_ASSIGNED_LABEL,
    UNKNOWN_LEVEL_LABEL,
)
from okrtree.exceptions import ValidationError


def parse_date(date_string: str) -> Optional[datetime]:
    """
    Parse a date string using multiple supported formats.

    Args:
        date_string: The date string to parse.

    Returns:
        A datetime object if parsing succeeds, None otherwise.

    Examples:
        >>> parse_date("2025-03-01")  # ISO 8601
        >>> parse_date("01/03/2025")  # DD/MM/YYYY
        >>> parse_date("1 March 2025")  # DD Month YYYY
    """
    for fmt in DEFAULT_DATE_FORMATS:
        try:
            return datetime.strptime(date_string.strip(), fmt)
        except ValueError:
            continue
    return None


def format_date(value: Optional[date]) -> str:
    """Format a date in YYYY-MM-DD form, or '-' when missing."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d")


def clamp_progress(value: float) -> int:
    """
    Clamp a progress value into [0, 100] and round it to an int.

    Raises:
        ValidationError: If the value is NaN or infinite.
    """
    if not math.isfinite(value):
        raise ValidationError(
            "Progress must be a number", {"progress_percentage": "Progress must be a number"}
        )
    return int(max(MIN_PROGRESS, min(MAX_PROGRESS, round(value))))


def level_label(level: Optional[str]) -> str:
    """Human label for an objective level; unknown values get a generic label."""
    if level is None:
        return UNKNOWN_LEVEL_LABEL
    key = getattr(level, "value", level)
    return LEVEL_LABELS.get(key, UNKNOWN_LEVEL_LABEL)


def format_assignees(assigned_to: Iterable[str], users_map: Mapping[str, str]) -> str:
    """Render assignee ids as names, falling back to the raw id."""
    names = [users_map.get(emp_id, emp_id) for emp_id in assigned_to]
    if not names:
        return NOT_ASSIGNED_LABEL
    return ", ".join(names)


def truncate(text: str, limit: int = 25) -> str:
    """Shorten text for compact labels."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
