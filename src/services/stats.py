"""
Time statistics: minutes per category, overall and per day.
"""

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from core.config import CATEGORY_LABELS, MAX_RANGE_DAYS
from core.errors import ValidationError
from models.events import CalendarEvent, Category, DailyBucket, PeriodRange, TimeStats
from services.classifier import category_for_calendar

logger = logging.getLogger(__name__)

# Summary line order and markers
SUMMARY_ORDER = [
    (Category.PROD, "✅"),
    (Category.ADMIN, "🔄"),
    (Category.NONPROD, "⚠️"),
]


def format_day_label(d: date) -> str:
    """Format date as 'Mon, Jan 1' (platform-safe, no zero-padding)."""
    return f"{d.strftime('%a, %b')} {d.day}"


def range_days(period_range: PeriodRange) -> list[date]:
    """Every local date in the range, inclusive."""
    first = period_range.start_date.date()
    last = period_range.end_date.date()
    span = (last - first).days + 1
    if span > MAX_RANGE_DAYS:
        raise ValidationError(
            f"Date range of {span} days exceeds the maximum of {MAX_RANGE_DAYS} days",
            field="range",
        )
    return [first + timedelta(days=offset) for offset in range(max(span, 0))]


def aggregate(events: Iterable[CalendarEvent], period_range: PeriodRange) -> TimeStats:
    """
    Bucket event durations by category and by start day.

    Events without both timestamps, all-day events, events with no positive
    duration and events starting outside the range are skipped, so the
    daily totals always add up to the overall total.

    Raises:
        ValidationError: range longer than MAX_RANGE_DAYS
    """
    tz = period_range.start_date.tzinfo
    days = range_days(period_range)

    # Zero-filled up front so empty days still show up
    daily = {
        day.isoformat(): {category: 0 for category in Category}
        for day in days
    }
    totals = {category: 0 for category in Category}

    for event in events:
        if event.all_day or event.start is None or event.end is None:
            continue
        # Whole minutes per event keep every sum exact
        duration = round((event.end - event.start).total_seconds() / 60)
        if duration <= 0:
            continue

        date_key = event.start.astimezone(tz).date().isoformat()
        bucket = daily.get(date_key)
        if bucket is None:
            logger.debug("Skipping event outside range: %s (%s)", event.title, date_key)
            continue

        category = category_for_calendar(event.calendar_name)
        bucket[category] += duration
        totals[category] += duration

    breakdown = {}
    for day in days:
        minutes = daily[day.isoformat()]
        breakdown[day.isoformat()] = DailyBucket(
            date=day.isoformat(),
            display_label=format_day_label(day),
            prod=minutes[Category.PROD],
            nonprod=minutes[Category.NONPROD],
            admin=minutes[Category.ADMIN],
            total=minutes[Category.PROD] + minutes[Category.NONPROD] + minutes[Category.ADMIN],
        )

    return TimeStats(
        prod=totals[Category.PROD],
        nonprod=totals[Category.NONPROD],
        admin=totals[Category.ADMIN],
        total_minutes=totals[Category.PROD] + totals[Category.NONPROD] + totals[Category.ADMIN],
        daily_breakdown=breakdown,
    )


# =============================================================================
# FORMATTING
# =============================================================================


def format_minutes(minutes: float) -> str:
    """Format minutes as '3h 5m', '2h' or '45m'."""
    hours = int(minutes // 60)
    mins = int(minutes % 60)
    if hours > 0 and mins > 0:
        return f"{hours}h {mins}m"
    if hours > 0:
        return f"{hours}h"
    return f"{mins}m"


def format_stats_summary(stats: TimeStats, period_label: str) -> str:
    """Human-readable summary of a period's stats."""
    header = f"📊 Time Stats for {period_label}"
    if stats.total_minutes == 0:
        return f"{header}\n\nNo tracked activities found for this period."

    lines = [header, "", f"Total tracked time: {format_minutes(stats.total_minutes)}", ""]
    for category, marker in SUMMARY_ORDER:
        minutes = stats.minutes(category)
        if minutes > 0:
            percentage = round(stats.percentage(category))
            lines.append(f"{marker} {CATEGORY_LABELS[category]}: {format_minutes(minutes)} ({percentage}%)")
    return "\n".join(lines)


def stats_to_dict(stats: TimeStats) -> dict:
    """Structured payload for tool responses."""
    return {
        "totalMinutes": stats.total_minutes,
        "totalHours": stats.hours(),
        "categories": {
            category.value: {
                "minutes": stats.minutes(category),
                "hours": stats.hours(category),
                "percentage": round(stats.percentage(category)),
            }
            for category in Category
        },
        "dailyBreakdown": {key: bucket.to_dict() for key, bucket in stats.daily_breakdown.items()},
    }
