"""
Scheduled release date calculation.

A staged task is released on the last business Friday before the planning
block it is staged in starts. The date is computed once when the task is
created and stored; later edits to the block's start date do not move it.
"""

from datetime import date, datetime, timedelta
from typing import Any

from cardflow.core.errors import TemplateValidationError

FRIDAY = 4  # date.weekday(): Monday == 0


def previous_friday(start: date) -> date:
    """
    The Friday strictly before ``start``.

    Steps back one day at a time from the day before ``start``.

    Example:
        >>> previous_friday(date(2026, 3, 2))  # a Monday
        datetime.date(2026, 2, 27)
        >>> previous_friday(date(2026, 3, 6))  # a Friday
        datetime.date(2026, 2, 27)
    """
    result = start - timedelta(days=1)
    while result.weekday() != FRIDAY:
        result -= timedelta(days=1)
    return result


def parse_list_date(value: Any) -> date | None:
    """
    Parse a list start/end date as stored (ISO date or ISO datetime).

    Returns None for empty values.

    Raises:
        ValueError: If the value is not an ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def scheduled_release_date(staging_list: dict[str, Any], template_title: str) -> date:
    """
    Release date for a task staged into ``staging_list``.

    Args:
        staging_list: List row with a ``start_date`` column
        template_title: Title used in the error when the list has no start date

    Raises:
        TemplateValidationError: If the staging list has no start date
    """
    start = parse_list_date(staging_list.get("start_date"))
    if start is None:
        raise TemplateValidationError(template_title, "Staging list must have a start date")
    return previous_friday(start)
