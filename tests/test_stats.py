"""Tests for time statistics aggregation."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from core.config import CALENDAR_MAP
from core.errors import ValidationError
from models.events import CalendarEvent, Category
from services.periods import CustomPeriod, resolve_period
from services.stats import aggregate, format_minutes, format_stats_summary, stats_to_dict

from conftest import make_event

UTC = timezone.utc
NOW = datetime(2024, 1, 15, 18, 0, tzinfo=UTC)

PROD = CALENDAR_MAP[Category.PROD]
NONPROD = CALENDAR_MAP[Category.NONPROD]
ADMIN = CALENDAR_MAP[Category.ADMIN]


def flatten(events_by_calendar):
    return [event for events in events_by_calendar.values() for event in events]


def test_single_day_totals(sample_events):
    period = resolve_period("today", NOW)
    stats = aggregate(flatten(sample_events), period)

    assert stats.prod == 180
    assert stats.nonprod == 90
    assert stats.admin == 30
    assert stats.total_minutes == 300
    assert list(stats.daily_breakdown) == ["2024-01-15"]
    assert stats.daily_breakdown["2024-01-15"].display_label == "Mon, Jan 15"


def test_percentages_and_hours(sample_events):
    stats = aggregate(flatten(sample_events), resolve_period("today", NOW))
    assert stats.percentage(Category.PROD) == pytest.approx(60.0)
    assert stats.hours(Category.NONPROD) == 1.5
    assert stats.hours() == 5.0


def test_empty_thirty_day_range():
    period = resolve_period(CustomPeriod("2024-01-01", "2024-01-30"), NOW)
    stats = aggregate([], period)

    assert len(stats.daily_breakdown) == 30
    assert all(bucket.total == 0 for bucket in stats.daily_breakdown.values())
    assert stats.total_minutes == 0
    assert stats.percentage(Category.PROD) == 0


def test_skips_all_day_missing_and_non_positive_events():
    day = datetime(2024, 1, 15, 9, 0, tzinfo=UTC)
    events = [
        make_event("Holiday", day, 24 * 60, PROD, all_day=True),
        make_event("Zero", day, 0, PROD),
        make_event("Backwards", day, -30, PROD),
        make_event("Real", day, 45, PROD),
    ]
    stats = aggregate(events, resolve_period("today", NOW))
    assert stats.prod == 45
    assert stats.total_minutes == 45


def test_skips_events_outside_range():
    events = [
        make_event("Before", datetime(2024, 1, 14, 23, 0, tzinfo=UTC), 120, PROD),
        make_event("Inside", datetime(2024, 1, 15, 10, 0, tzinfo=UTC), 60, PROD),
    ]
    stats = aggregate(events, resolve_period("today", NOW))
    assert stats.total_minutes == 60


def test_buckets_by_local_start_date():
    # 02:00 UTC on the 16th is the evening of the 15th at UTC-7
    event = make_event("Late coding", datetime(2024, 1, 16, 2, 0, tzinfo=UTC), 60, PROD)
    period = resolve_period(CustomPeriod("2024-01-15", "2024-01-16"), NOW, -420)
    stats = aggregate([event], period)
    assert stats.daily_breakdown["2024-01-15"].prod == 60
    assert stats.daily_breakdown["2024-01-16"].prod == 0


def test_unknown_calendar_counts_as_admin():
    event = make_event("Dentist", datetime(2024, 1, 15, 10, 0, tzinfo=UTC), 30, "Personal")
    stats = aggregate([event], resolve_period("today", NOW))
    assert stats.admin == 30


def test_daily_sums_match_total():
    start = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)
    events = []
    for offset in range(0, 14):
        day = start + timedelta(days=offset)
        events.append(make_event("Work", day, 30 + offset, PROD))
        events.append(make_event("TV", day + timedelta(hours=10), 15, NONPROD))
        events.append(make_event("Lunch", day + timedelta(hours=4), 20, ADMIN))
    # One event past the range end
    events.append(make_event("Late", datetime(2024, 1, 20, 8, 0, tzinfo=UTC), 60, PROD))

    period = resolve_period(CustomPeriod("2024-01-01", "2024-01-14"), NOW)
    stats = aggregate(events, period)

    daily_total = sum(bucket.total for bucket in stats.daily_breakdown.values())
    assert daily_total == stats.total_minutes
    assert stats.prod + stats.nonprod + stats.admin == stats.total_minutes
    for bucket in stats.daily_breakdown.values():
        assert bucket.prod + bucket.nonprod + bucket.admin == bucket.total


def test_second_granular_durations_keep_totals_exact():
    rng = random.Random(11)
    start = datetime(2024, 1, 1, tzinfo=UTC)
    calendars = [PROD, NONPROD, ADMIN]
    events = []
    for index in range(60):
        begin = start + timedelta(days=rng.randrange(10), seconds=rng.randrange(20 * 3600))
        events.append(CalendarEvent(
            id=f"evt-{index}",
            title="Block",
            start=begin,
            end=begin + timedelta(seconds=rng.randint(1, 7200)),
            calendar_name=rng.choice(calendars),
        ))

    period = resolve_period(CustomPeriod("2024-01-01", "2024-01-10"), NOW)
    stats = aggregate(events, period)

    daily_total = sum(bucket.total for bucket in stats.daily_breakdown.values())
    assert isinstance(stats.total_minutes, int)
    assert daily_total == stats.prod + stats.nonprod + stats.admin == stats.total_minutes


def test_sub_minute_event_is_skipped():
    begin = datetime(2024, 1, 15, 9, 0, tzinfo=UTC)
    event = CalendarEvent(id="blip", title="Blip", start=begin, end=begin + timedelta(seconds=20),
                          calendar_name=PROD)
    stats = aggregate([event], resolve_period("today", NOW))
    assert stats.total_minutes == 0


def test_aggregate_is_deterministic(sample_events):
    period = resolve_period("today", NOW)
    events = flatten(sample_events)
    assert aggregate(events, period) == aggregate(list(reversed(events)), period)


def test_range_over_a_year_raises():
    period = resolve_period(CustomPeriod("2023-01-01", "2024-01-15"), NOW)
    with pytest.raises(ValidationError):
        aggregate([], period)


@pytest.mark.parametrize(
    "minutes, expected",
    [(185, "3h 5m"), (120, "2h"), (45, "45m"), (0, "0m")],
)
def test_format_minutes(minutes, expected):
    assert format_minutes(minutes) == expected


def test_summary_lists_categories(sample_events):
    stats = aggregate(flatten(sample_events), resolve_period("today", NOW))
    summary = format_stats_summary(stats, "Today")
    assert summary.startswith("📊 Time Stats for Today")
    assert "Total tracked time: 5h" in summary
    assert "✅ Productive: 3h (60%)" in summary
    assert "🔄 Admin/Rest: 30m (10%)" in summary
    assert "⚠️ Non-productive: 1h 30m (30%)" in summary


def test_summary_for_empty_period():
    stats = aggregate([], resolve_period("today", NOW))
    assert "No tracked activities found" in format_stats_summary(stats, "Today")


def test_stats_to_dict(sample_events):
    payload = stats_to_dict(aggregate(flatten(sample_events), resolve_period("today", NOW)))
    assert payload["totalMinutes"] == 300
    assert payload["categories"]["prod"]["percentage"] == 60
    assert payload["dailyBreakdown"]["2024-01-15"]["displayDate"] == "Mon, Jan 15"


def test_generated_month_keeps_totals_consistent():
    from fixtures.generate_events import generate_events

    events = generate_events(datetime(2024, 1, 1).date(), datetime(2024, 1, 31).date(), seed=7)
    period = resolve_period(CustomPeriod("2024-01-01", "2024-01-31"), NOW)
    stats = aggregate(events, period)

    expected = sum(round((event.end - event.start).total_seconds() / 60) for event in events)
    assert stats.total_minutes == expected
    daily_total = sum(bucket.total for bucket in stats.daily_breakdown.values())
    assert daily_total == stats.total_minutes
    assert all(bucket.total > 0 for bucket in stats.daily_breakdown.values())


def test_generated_events_are_deterministic():
    from fixtures.generate_events import generate_events

    first = datetime(2024, 1, 1).date()
    assert generate_events(first, first, seed=3) == generate_events(first, first, seed=3)
