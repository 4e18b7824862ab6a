"""
Time expression parsing relative to a caller-supplied UTC offset.

Offsets are whole minutes east of UTC (-420 for UTC-7) and are applied by
simple addition. There is no timezone database lookup and no DST handling.
"""

import re
from datetime import date, datetime, time, timedelta, timezone

CLOCK_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")


def offset_timezone(utc_offset_minutes: int) -> timezone:
    """Fixed-offset tzinfo for a minutes-east-of-UTC offset."""
    return timezone(timedelta(minutes=utc_offset_minutes))


def to_local(instant: datetime, utc_offset_minutes: int) -> datetime:
    return instant.astimezone(offset_timezone(utc_offset_minutes))


def local_date(instant: datetime, utc_offset_minutes: int) -> date:
    """Calendar date of an instant as seen by the caller."""
    return to_local(instant, utc_offset_minutes).date()


def combine_local(day: date, hours: int, minutes: int, utc_offset_minutes: int) -> datetime:
    return datetime.combine(day, time(hours, minutes), tzinfo=offset_timezone(utc_offset_minutes))


def parse_clock(token: str) -> tuple[int, int] | None:
    """
    Parse a clock token into (hours, minutes).

    Accepts 12-hour tokens with an am/pm suffix ("9am", "2:30 pm") and
    24-hour "HH:MM" tokens. A bare hour such as "9" is ambiguous and rejected.
    """
    match = CLOCK_PATTERN.match(token.strip().lower())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = match.group(3)

    if meridiem:
        if not 1 <= hours <= 12:
            return None
        if meridiem == "pm" and hours != 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0
    elif match.group(2) is None:
        return None

    if hours > 23 or minutes > 59:
        return None
    return hours, minutes


def parse_iso(value: str, utc_offset_minutes: int = 0) -> datetime | None:
    """Parse an ISO 8601 string; naive values are local wall-clock time."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=offset_timezone(utc_offset_minutes))
    return parsed


def parse_time(raw: str | None, reference_now: datetime, utc_offset_minutes: int = 0) -> datetime | None:
    """
    Resolve a time expression to an absolute instant.

    Args:
        raw: "now", a clock token ("9am", "14:30") or an ISO 8601 string
        reference_now: Timezone-aware current instant
        utc_offset_minutes: Caller's offset from UTC

    Returns:
        The instant, or None when the expression is not recognised. Clock
        tokens land on the caller's current local date; there is no rollover
        to the next day.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None

    if value.lower() == "now":
        return reference_now

    clock = parse_clock(value)
    if clock:
        day = local_date(reference_now, utc_offset_minutes)
        return combine_local(day, clock[0], clock[1], utc_offset_minutes)

    return parse_iso(value, utc_offset_minutes)