"""
Named and explicit period resolution for statistics queries.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Literal

from core.errors import ValidationError
from core.timeparse import local_date, offset_timezone
from core.validation import parse_date_string
from models.events import PeriodRange

PeriodName = Literal["today", "yesterday", "this_week", "last_week", "this_month", "last_month"]

PERIOD_LABELS = {
    "today": "Today",
    "yesterday": "Yesterday",
    "this_week": "This Week",
    "last_week": "Last Week",
    "this_month": "This Month",
    "last_month": "Last Month",
}

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class NamedPeriod:
    name: PeriodName


@dataclass(frozen=True)
class SingleDate:
    date: date | str


@dataclass(frozen=True)
class CustomPeriod:
    from_date: date | str | None = None
    to_date: date | str | None = None


PeriodSpec = NamedPeriod | SingleDate | CustomPeriod


def day_range(first: date, last: date, label: str, utc_offset_minutes: int = 0) -> PeriodRange:
    """Build a range covering whole local days from first to last."""
    tz = offset_timezone(utc_offset_minutes)
    return PeriodRange(
        start_date=datetime.combine(first, time.min, tzinfo=tz),
        end_date=datetime.combine(last, END_OF_DAY, tzinfo=tz),
        label=label,
    )


def format_long_date(d: date) -> str:
    """Format date as 'Monday, January 15, 2024' (no zero-padding)."""
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def week_start(today: date) -> date:
    """Monday of the week containing today."""
    weekday = today.isoweekday() % 7  # Sunday=0 .. Saturday=6
    offset = -6 if weekday == 0 else 1 - weekday
    return today + timedelta(days=offset)


def resolve_named(name: str, today: date) -> tuple[date, date]:
    """First and last day of a named period relative to today."""
    if name == "today":
        return today, today
    if name == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if name == "this_week":
        return week_start(today), today
    if name == "last_week":
        last_monday = week_start(today) - timedelta(days=7)
        return last_monday, last_monday + timedelta(days=6)
    if name == "this_month":
        return today.replace(day=1), today
    if name == "last_month":
        # Day 0 of this month is the last day of the previous one
        last_day = today.replace(day=1) - timedelta(days=1)
        return last_day.replace(day=1), last_day
    raise ValidationError(
        f"Unknown period: '{name}'",
        field="period",
        details=[f"Valid periods: {', '.join(PERIOD_LABELS)}, custom"],
    )


def resolve_period(spec: PeriodSpec | str, now: datetime, utc_offset_minutes: int = 0) -> PeriodRange:
    """
    Map a period spec onto concrete local-day boundaries.

    Args:
        spec: NamedPeriod (or its bare name), SingleDate or CustomPeriod
        now: Timezone-aware current instant
        utc_offset_minutes: Caller's offset from UTC

    Raises:
        ValidationError: unknown name, bad date, or custom range missing an end
    """
    if isinstance(spec, str):
        spec = NamedPeriod(spec)

    if isinstance(spec, SingleDate):
        day = parse_date_string(spec.date, field="date")
        return day_range(day, day, format_long_date(day), utc_offset_minutes)

    if isinstance(spec, CustomPeriod):
        if not spec.from_date or not spec.to_date:
            raise ValidationError(
                "from and to dates are required for custom period",
                field="to" if spec.from_date else "from",
            )
        first = parse_date_string(spec.from_date, field="from")
        last = parse_date_string(spec.to_date, field="to")
        if first > last:
            raise ValidationError(
                f"from ({first.isoformat()}) must not be after to ({last.isoformat()})",
                field="from",
            )
        label = f"{first.isoformat()} to {last.isoformat()}"
        return day_range(first, last, label, utc_offset_minutes)

    today = local_date(now, utc_offset_minutes)
    first, last = resolve_named(spec.name, today)
    return day_range(first, last, PERIOD_LABELS[spec.name], utc_offset_minutes)
