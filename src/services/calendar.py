"""
Calendar store: calendar discovery, event fetching and event creation.

The store is an injected collaborator. GraphCalendarStore talks to MS Graph;
tests substitute an in-memory implementation of the same protocol.
"""

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.config import DIARY_USER_ID, FETCH_CONCURRENCY, MAX_EVENTS_PER_QUERY
from core.errors import ValidationError
from core.graph_client import get_graph_client
from models.events import ActivityLogEntry, CalendarEvent, CalendarInfo, Category, CreatedEvent

logger = logging.getLogger(__name__)


class CalendarStore(Protocol):
    """Operations the diary needs from a calendar backend."""

    async def list_calendars(self) -> list[CalendarInfo]: ...

    async def query_events(self, calendar_id: str, start: datetime, end: datetime) -> list[CalendarEvent]: ...

    async def create_event(self, calendar_id: str, entry: ActivityLogEntry) -> CreatedEvent: ...

    async def create_all_day_event(
        self, calendar_id: str, title: str, day: date, description: str = ""
    ) -> CreatedEvent: ...

    async def last_event_end(
        self, calendar_ids: Sequence[str], lookback: timedelta, now: datetime
    ) -> datetime | None: ...


# =============================================================================
# MS GRAPH IMPLEMENTATION
# =============================================================================


def format_graph_datetime(value: datetime) -> str:
    """UTC timestamp in the form Graph filters and DateTimeTimeZone accept."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def parse_graph_datetime(value: str | None, time_zone: str | None = "UTC") -> datetime | None:
    """
    Parse a Graph dateTime string ("2025-11-01T09:00:00.0000000").

    Graph sends seven fractional digits and no offset; the zone comes from
    the sibling timeZone field.
    """
    if not value:
        return None
    cleaned = re.sub(r"(\.\d{6})\d+", r"\1", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        logger.debug("Unparseable Graph timestamp: %s", value)
        return None
    if parsed.tzinfo is None:
        try:
            tz = ZoneInfo(time_zone or "UTC")
        except (ZoneInfoNotFoundError, ValueError):
            tz = ZoneInfo("UTC")
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_event(event, calendar_name: str = "") -> CalendarEvent:
    """Parse MS Graph event into our format."""
    start_tz = event.start.time_zone if event.start else None
    end_tz = event.end.time_zone if event.end else None
    start = parse_graph_datetime(event.start.date_time if event.start else None, start_tz)
    end = parse_graph_datetime(event.end.date_time if event.end else None, end_tz)

    description = None
    if event.body and event.body.content:
        description = event.body.content.strip()
        # Handle both plain text and HTML
        if "<" in description:
            description = re.sub(r"<[^>]+>", "\n", description).strip()

    return CalendarEvent(
        id=event.id or "",
        title=event.subject or "",
        start=start,
        end=end,
        calendar_name=calendar_name,
        all_day=bool(event.is_all_day),
        description=description,
        event_date=start.date() if start else None,
    )


def to_created_event(event) -> CreatedEvent:
    return CreatedEvent(
        id=event.id or "",
        title=event.subject or "",
        start=event.start.date_time if event.start else None,
        end=event.end.date_time if event.end else None,
        web_link=event.web_link,
    )


class GraphCalendarStore:
    """Calendar store backed by one user's MS365 calendars."""

    def __init__(self, user_id: str = DIARY_USER_ID, client=None):
        if not user_id:
            raise ValidationError("DIARY_USER_ID is not configured", field="user_id")
        self.user_id = user_id
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_graph_client()
        return self._client

    def _calendars(self):
        return self.client.users.by_user_id(self.user_id).calendars

    async def list_calendars(self) -> list[CalendarInfo]:
        response = await self._calendars().get()
        calendars = response.value if response and response.value else []
        return [
            CalendarInfo(
                id=calendar.id,
                name=calendar.name or "",
                is_default=bool(calendar.is_default_calendar),
                can_edit=calendar.can_edit is not False,
            )
            for calendar in calendars
        ]

    async def query_events(self, calendar_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Fetch events starting within [start, end]."""
        from msgraph.generated.users.item.calendars.item.events.events_request_builder import (
            EventsRequestBuilder,
        )

        start_str = format_graph_datetime(start)
        end_str = format_graph_datetime(end)
        query_params = EventsRequestBuilder.EventsRequestBuilderGetQueryParameters(
            filter=f"start/dateTime ge '{start_str}' and start/dateTime le '{end_str}'",
            orderby=["start/dateTime"],
            top=MAX_EVENTS_PER_QUERY,
        )
        config = EventsRequestBuilder.EventsRequestBuilderGetRequestConfiguration(
            query_parameters=query_params
        )

        response = await self._calendars().by_calendar_id(calendar_id).events.get(
            request_configuration=config
        )
        raw_events = response.value if response and response.value else []
        return [parse_event(event) for event in raw_events]

    async def create_event(self, calendar_id: str, entry: ActivityLogEntry) -> CreatedEvent:
        from msgraph.generated.models.body_type import BodyType
        from msgraph.generated.models.date_time_time_zone import DateTimeTimeZone
        from msgraph.generated.models.event import Event
        from msgraph.generated.models.item_body import ItemBody

        event = Event(
            subject=entry.title,
            start=DateTimeTimeZone(date_time=format_graph_datetime(entry.start_time), time_zone="UTC"),
            end=DateTimeTimeZone(date_time=format_graph_datetime(entry.end_time), time_zone="UTC"),
            body=ItemBody(content_type=BodyType.Text, content=entry.description or ""),
        )
        created = await self._calendars().by_calendar_id(calendar_id).events.post(event)
        return to_created_event(created)

    async def create_all_day_event(
        self, calendar_id: str, title: str, day: date, description: str = ""
    ) -> CreatedEvent:
        from msgraph.generated.models.body_type import BodyType
        from msgraph.generated.models.date_time_time_zone import DateTimeTimeZone
        from msgraph.generated.models.event import Event
        from msgraph.generated.models.item_body import ItemBody

        # All-day events run midnight to midnight
        next_day = day + timedelta(days=1)
        event = Event(
            subject=title,
            is_all_day=True,
            start=DateTimeTimeZone(date_time=f"{day.isoformat()}T00:00:00", time_zone="UTC"),
            end=DateTimeTimeZone(date_time=f"{next_day.isoformat()}T00:00:00", time_zone="UTC"),
            body=ItemBody(content_type=BodyType.Text, content=description),
        )
        created = await self._calendars().by_calendar_id(calendar_id).events.post(event)
        return to_created_event(created)

    async def last_event_end(
        self, calendar_ids: Sequence[str], lookback: timedelta, now: datetime
    ) -> datetime | None:
        calendars = [CalendarInfo(id=calendar_id, name=calendar_id) for calendar_id in calendar_ids]
        events = await fetch_events(self, calendars, now - lookback, now)
        return latest_end(events)


# =============================================================================
# FAN-OUT HELPERS
# =============================================================================


def find_category_calendars(
    calendars: Sequence[CalendarInfo], calendar_map: Mapping[Category, str]
) -> dict[Category, CalendarInfo]:
    """Match configured category calendar names (case-insensitive)."""
    by_name = {calendar.name.lower(): calendar for calendar in calendars}
    found = {}
    for category, name in calendar_map.items():
        calendar = by_name.get(name.lower())
        if calendar:
            found[category] = calendar
    return found


def find_calendar(calendars: Sequence[CalendarInfo], name_or_id: str) -> CalendarInfo | None:
    """Find a calendar by id or case-insensitive name."""
    for calendar in calendars:
        if calendar.id == name_or_id or calendar.name.lower() == name_or_id.lower():
            return calendar
    return None


def latest_end(events: Sequence[CalendarEvent]) -> datetime | None:
    """Latest end among timed events."""
    ends = [event.end for event in events if event.end is not None and not event.all_day]
    return max(ends) if ends else None


async def fetch_events(
    store: CalendarStore,
    calendars: Sequence[CalendarInfo],
    start: datetime,
    end: datetime,
    max_concurrency: int = FETCH_CONCURRENCY,
) -> list[CalendarEvent]:
    """
    Fetch events from several calendars concurrently.

    A calendar that fails is logged and contributes no events; the rest are
    merged and sorted by start time.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def fetch_one(calendar: CalendarInfo) -> list[CalendarEvent]:
        async with semaphore:
            try:
                events = await store.query_events(calendar.id, start, end)
            except Exception as e:
                logger.warning("Error fetching events from %s: %s", calendar.name, e)
                return []
        return [
            event if event.calendar_name else replace(event, calendar_name=calendar.name)
            for event in events
        ]

    results = await asyncio.gather(*(fetch_one(calendar) for calendar in calendars))
    merged = [event for events in results for event in events]
    merged.sort(key=lambda event: (event.start is None, event.start or start))
    return merged


async def fetch_category_events(
    store: CalendarStore,
    calendar_map: Mapping[Category, str],
    start: datetime,
    end: datetime,
    max_concurrency: int = FETCH_CONCURRENCY,
) -> list[CalendarEvent]:
    """Events from every category calendar that exists in the store."""
    calendars = await store.list_calendars()
    category_calendars = find_category_calendars(calendars, calendar_map)
    missing = [name for category, name in calendar_map.items() if category not in category_calendars]
    if missing:
        logger.warning("Category calendars not found: %s", ", ".join(missing))
    return await fetch_events(store, list(category_calendars.values()), start, end, max_concurrency)
