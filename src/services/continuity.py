"""
Default start/end times for activities without explicit times.

Starts chain off the end of the previous activity; ends anchor to now.
"""

from datetime import datetime

from core.errors import ValidationError
from core.timeparse import parse_time


def resolve_start_time(
    explicit: str | None,
    last_event_end_time: datetime | None,
    now: datetime,
    utc_offset_minutes: int = 0,
) -> datetime:
    """
    Resolve an activity's start time.

    An explicit value must parse; otherwise the end of the last logged
    activity is used, and failing that, now.
    """
    if explicit:
        parsed = parse_time(explicit, now, utc_offset_minutes)
        if parsed is None:
            raise ValidationError(f"Invalid start time format: {explicit}", field="startTime")
        return parsed
    if last_event_end_time is not None:
        return last_event_end_time
    return now


def resolve_end_time(explicit: str | None, now: datetime, utc_offset_minutes: int = 0) -> datetime:
    """Resolve an activity's end time; never a continuation value."""
    if explicit:
        parsed = parse_time(explicit, now, utc_offset_minutes)
        if parsed is None:
            raise ValidationError(f"Invalid end time format: {explicit}", field="endTime")
        return parsed
    return now
