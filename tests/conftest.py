"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.config import CALENDAR_MAP, HIGHLIGHTS_CALENDAR  # noqa: E402
from models.events import CalendarEvent, CalendarInfo, Category, CreatedEvent  # noqa: E402
from services.calendar import latest_end  # noqa: E402

UTC = timezone.utc


class FakeCalendarStore:
    """In-memory calendar store with optional per-calendar failures."""

    def __init__(self, calendars: list[CalendarInfo], events: dict[str, list[CalendarEvent]] | None = None):
        self.calendars = calendars
        self.events = events or {}
        self.failing: set[str] = set()
        self.fail_listing = False
        self.fail_create = False
        self.created: list[tuple[str, object]] = []
        self.queries: list[tuple[str, datetime, datetime]] = []

    async def list_calendars(self):
        if self.fail_listing:
            raise ConnectionError("store unreachable")
        return list(self.calendars)

    async def query_events(self, calendar_id, start, end):
        self.queries.append((calendar_id, start, end))
        if calendar_id in self.failing:
            raise ConnectionError(f"cannot read {calendar_id}")
        return [
            event for event in self.events.get(calendar_id, [])
            if event.start is not None and start <= event.start <= end
        ]

    async def create_event(self, calendar_id, entry):
        if self.fail_create:
            raise ConnectionError("write rejected")
        self.created.append((calendar_id, entry))
        return CreatedEvent(
            id=f"evt-{len(self.created)}",
            title=entry.title,
            start=entry.start_time.isoformat(),
            end=entry.end_time.isoformat(),
        )

    async def create_all_day_event(self, calendar_id, title, day: date, description=""):
        self.created.append((calendar_id, (title, day, description)))
        return CreatedEvent(id=f"evt-{len(self.created)}", title=title, start=day.isoformat(), end=None)

    async def last_event_end(self, calendar_ids, lookback, now):
        events = []
        for calendar_id in calendar_ids:
            events.extend(await self.query_events(calendar_id, now - lookback, now))
        return latest_end(events)


def make_event(title, start, minutes, calendar_name="", all_day=False, event_id=None):
    return CalendarEvent(
        id=event_id or f"{title}-{start.isoformat()}",
        title=title,
        start=start,
        end=start + timedelta(minutes=minutes),
        calendar_name=calendar_name,
        all_day=all_day,
    )


@pytest.fixture
def now():
    """Monday 2024-01-15 18:00 UTC."""
    return datetime(2024, 1, 15, 18, 0, tzinfo=UTC)


@pytest.fixture
def category_calendars():
    return [
        CalendarInfo(id="cal-prod", name=CALENDAR_MAP[Category.PROD]),
        CalendarInfo(id="cal-nonprod", name=CALENDAR_MAP[Category.NONPROD]),
        CalendarInfo(id="cal-admin", name=CALENDAR_MAP[Category.ADMIN]),
        CalendarInfo(id="cal-highlights", name=HIGHLIGHTS_CALENDAR),
        CalendarInfo(id="cal-default", name="Calendar", is_default=True),
    ]


@pytest.fixture
def sample_events():
    """A few events on Monday 2024-01-15 (UTC) across the category calendars."""
    day = datetime(2024, 1, 15, tzinfo=UTC)
    return {
        "cal-prod": [
            make_event("Coding", day.replace(hour=9), 120, CALENDAR_MAP[Category.PROD]),
            make_event("Team meeting", day.replace(hour=13), 60, CALENDAR_MAP[Category.PROD]),
        ],
        "cal-nonprod": [
            make_event("Netflix", day.replace(hour=20), 90, CALENDAR_MAP[Category.NONPROD]),
        ],
        "cal-admin": [
            make_event("Lunch", day.replace(hour=12), 30, CALENDAR_MAP[Category.ADMIN]),
        ],
    }


@pytest.fixture
def store(category_calendars, sample_events):
    return FakeCalendarStore(category_calendars, sample_events)
