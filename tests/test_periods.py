"""Tests for period range resolution."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from core.errors import ValidationError
from services.periods import (
    CustomPeriod,
    NamedPeriod,
    SingleDate,
    format_long_date,
    resolve_period,
    week_start,
)

UTC = timezone.utc
# Monday
NOW = datetime(2024, 1, 15, 18, 0, tzinfo=UTC)


def test_today_spans_local_day():
    result = resolve_period("today", NOW)
    assert result.start_date == datetime(2024, 1, 15, 0, 0, tzinfo=UTC)
    assert result.end_date == datetime(2024, 1, 15, 23, 59, 59, 999000, tzinfo=UTC)
    assert result.label == "Today"
    assert result.is_single_day


def test_today_uses_caller_offset():
    # 18:00 UTC is already Tuesday at UTC+8
    result = resolve_period(NamedPeriod("today"), NOW, 480)
    assert result.start_date.date() == date(2024, 1, 16)
    assert result.start_date.time() == time(0, 0)
    assert result.start_date.utcoffset() == timedelta(hours=8)


def test_yesterday():
    result = resolve_period("yesterday", NOW)
    assert result.start_date.date() == date(2024, 1, 14)
    assert result.end_date.date() == date(2024, 1, 14)


def test_this_week_starts_monday():
    result = resolve_period("this_week", NOW)
    assert result.start_date.date() == date(2024, 1, 15)
    assert result.end_date.date() == date(2024, 1, 15)


def test_this_week_on_sunday_goes_back_six_days():
    sunday = datetime(2024, 1, 21, 12, 0, tzinfo=UTC)
    result = resolve_period("this_week", sunday)
    assert result.start_date.date() == date(2024, 1, 15)
    assert result.end_date.date() == date(2024, 1, 21)


@pytest.mark.parametrize(
    "today, monday",
    [
        (date(2024, 1, 15), date(2024, 1, 15)),
        (date(2024, 1, 17), date(2024, 1, 15)),
        (date(2024, 1, 20), date(2024, 1, 15)),
        (date(2024, 1, 21), date(2024, 1, 15)),
    ],
)
def test_week_start(today, monday):
    assert week_start(today) == monday


def test_last_week_is_monday_to_sunday():
    result = resolve_period("last_week", NOW)
    assert result.start_date.date() == date(2024, 1, 8)
    assert result.end_date.date() == date(2024, 1, 14)
    assert result.label == "Last Week"


def test_this_month_ends_today():
    result = resolve_period("this_month", NOW)
    assert result.start_date.date() == date(2024, 1, 1)
    assert result.end_date.date() == date(2024, 1, 15)


def test_last_month_crosses_year():
    result = resolve_period("last_month", NOW)
    assert result.start_date.date() == date(2023, 12, 1)
    assert result.end_date.date() == date(2023, 12, 31)


def test_last_month_in_leap_year():
    result = resolve_period("last_month", datetime(2024, 3, 10, tzinfo=UTC))
    assert result.end_date.date() == date(2024, 2, 29)


def test_single_date_short_circuits():
    result = resolve_period(SingleDate("2024-01-10"), NOW)
    assert result.start_date.date() == date(2024, 1, 10)
    assert result.end_date.date() == date(2024, 1, 10)
    assert result.label == "Wednesday, January 10, 2024"


def test_custom_range():
    result = resolve_period(CustomPeriod("2024-01-01", "2024-01-30"), NOW)
    assert result.start_date.date() == date(2024, 1, 1)
    assert result.end_date.date() == date(2024, 1, 30)
    assert result.label == "2024-01-01 to 2024-01-30"


def test_custom_without_to_raises():
    with pytest.raises(ValidationError) as exc_info:
        resolve_period(CustomPeriod("2024-01-01", None), NOW)
    assert exc_info.value.field == "to"


def test_custom_without_from_raises():
    with pytest.raises(ValidationError) as exc_info:
        resolve_period(CustomPeriod(None, "2024-01-01"), NOW)
    assert exc_info.value.field == "from"


def test_custom_reversed_raises():
    with pytest.raises(ValidationError):
        resolve_period(CustomPeriod("2024-02-01", "2024-01-01"), NOW)


def test_bad_date_format_raises():
    with pytest.raises(ValidationError):
        resolve_period(SingleDate("01/10/2024"), NOW)


def test_unknown_period_raises():
    with pytest.raises(ValidationError) as exc_info:
        resolve_period("fortnight", NOW)
    assert exc_info.value.field == "period"


def test_format_long_date_has_no_zero_padding():
    assert format_long_date(date(2024, 1, 5)) == "Friday, January 5, 2024"
