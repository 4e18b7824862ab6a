"""
Diary operations behind the tool surface.

Each operation takes validated tool input plus one ReferenceClock, talks to
the injected calendar store and chart renderer, and returns a ToolResult.
Ambiguity and escalation come back as results; bad input raises
ValidationError and store failures raise UpstreamError.
"""

import base64
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal

from models.inputs import (
    LogActivityInput,
    LogHighlightInput,
    ProcessMessageInput,
    QueryEventsInput,
    TimeStatsInput,
)
from core.config import (
    CATEGORY_LABELS,
    FETCH_CONCURRENCY,
    HIGHLIGHT_EMOJI,
    LOOKBACK_DAYS,
    DiaryConfig,
)
from core.errors import ErrorCodes, UpstreamError, ValidationError
from core.timeparse import local_date, to_local
from core.validation import check_entry_times, normalize_category, parse_date_string
from models.events import (
    ActivityLogEntry,
    CalendarEvent,
    CalendarInfo,
    Category,
    Escalation,
    PeriodRange,
    RoutedEntry,
    RoutingFailure,
)
from services.calendar import (
    CalendarStore,
    fetch_category_events,
    fetch_events,
    find_calendar,
    find_category_calendars,
)
from services.classifier import category_for_calendar, classify
from services.continuity import resolve_end_time, resolve_start_time
from services.periods import CustomPeriod, NamedPeriod, SingleDate, resolve_period
from services.reports import CHART_MEDIA_TYPE, ChartRenderer, default_chart_type
from services.router import RoutingContext, route
from services.stats import aggregate, format_stats_summary, range_days, stats_to_dict

logger = logging.getLogger(__name__)

ResultStatus = Literal["ok", "follow_up", "escalation"]

CATEGORY_OPTIONS = [
    {"id": Category.PROD.value, "label": "Productive (work, learning, exercise)"},
    {"id": Category.NONPROD.value, "label": "Non-productive (entertainment, leisure)"},
    {"id": Category.ADMIN.value, "label": "Admin/Rest (routine, chores, breaks)"},
]

EVENT_MARKERS = {
    Category.PROD: "✅",
    Category.ADMIN: "🔄",
    Category.NONPROD: "⚠️",
}


@dataclass(frozen=True)
class ReferenceClock:
    """The single 'now' and UTC offset used for one operation."""

    now: datetime
    utc_offset_minutes: int = 0

    @classmethod
    def capture(cls, utc_offset_minutes: int = 0) -> "ReferenceClock":
        return cls(now=datetime.now(timezone.utc), utc_offset_minutes=utc_offset_minutes or 0)

    @property
    def today(self):
        return local_date(self.now, self.utc_offset_minutes)


@dataclass
class ToolResult:
    """Text for people, structured data for programs, optional chart."""

    text: str
    structured: dict
    status: ResultStatus = "ok"
    chart: bytes | None = None
    chart_name: str = "time-stats.xlsx"
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        content = [{"type": "text", "text": self.text}]
        if self.chart is not None:
            content.append({
                "type": "resource",
                "resource": {
                    "uri": f"chart://{self.chart_name}",
                    "mimeType": CHART_MEDIA_TYPE,
                    "blob": base64.b64encode(self.chart).decode("ascii"),
                },
            })
        payload = {"content": content, "structuredContent": self.structured}
        if self.status == "follow_up":
            payload["isFollowUp"] = True
        elif self.status == "escalation":
            payload["needsInterpreter"] = True
        return payload


def format_clock(instant: datetime, utc_offset_minutes: int) -> str:
    """Local wall-clock time as '9:05 AM'."""
    local = to_local(instant, utc_offset_minutes)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def category_follow_up(title: str, pending_args: dict, suggested: Category | None = None) -> ToolResult:
    """Ask the caller to pick a category before anything is written."""
    if suggested is None:
        question = f'I couldn\'t determine a category for "{title}". Which category fits best?'
    else:
        question = (
            f'I guessed {CATEGORY_LABELS[suggested]} for "{title}" but I\'m not confident. '
            "Which category is correct?"
        )
    options = "\n".join(f"- **{option['id']}**: {option['label']}" for option in CATEGORY_OPTIONS)
    return ToolResult(
        text=f"{question}\n\n{options}",
        structured={
            "success": False,
            "code": ErrorCodes.AMBIGUOUS_CATEGORY,
            "suggestedCategory": suggested.value if suggested else None,
            "options": CATEGORY_OPTIONS,
            "pendingAction": "diary.log",
            "pendingArgs": {**pending_args, "allowLowConfidence": True},
        },
        status="follow_up",
    )


def event_to_dict(event: CalendarEvent, category: Category | None = None) -> dict:
    payload = {
        "id": event.id,
        "title": event.title,
        "start": event.start.isoformat() if event.start else None,
        "end": event.end.isoformat() if event.end else None,
        "allDay": event.all_day,
        "calendar": event.calendar_name,
    }
    if category is not None:
        payload["category"] = category.value
    if event.description:
        payload["description"] = event.description
    return payload


class DiaryService:
    """The diary tools, bound to one calendar store and chart renderer."""

    def __init__(
        self,
        store: CalendarStore,
        renderer: ChartRenderer | None = None,
        config: DiaryConfig | None = None,
        lookback_days: int = LOOKBACK_DAYS,
        max_concurrency: int = FETCH_CONCURRENCY,
    ):
        self.store = store
        self.renderer = renderer
        self.config = config or DiaryConfig()
        self.lookback = timedelta(days=lookback_days)
        self.max_concurrency = max_concurrency

    # =========================================================================
    # STORE ACCESS
    # =========================================================================

    async def _list_calendars(self) -> list[CalendarInfo]:
        try:
            return await self.store.list_calendars()
        except Exception as e:
            raise UpstreamError("Failed to list calendars", cause=e)

    def _require_calendar(self, calendars: list[CalendarInfo], name: str) -> CalendarInfo:
        calendar = find_calendar(calendars, name)
        if calendar is None:
            raise UpstreamError(f"Calendar not found: {name}")
        return calendar

    async def last_event_end(self, clock: ReferenceClock, calendars: list[CalendarInfo] | None = None):
        """End of the most recent activity across the category calendars."""
        if calendars is None:
            calendars = await self._list_calendars()
        found = find_category_calendars(calendars, self.config.calendar_map)
        if not found:
            return None
        try:
            return await self.store.last_event_end(
                [calendar.id for calendar in found.values()], self.lookback, clock.now
            )
        except Exception as e:
            raise UpstreamError("Failed to look up the last event end time", cause=e)

    async def _fetch(self, calendars: list[CalendarInfo], period_range: PeriodRange) -> list[CalendarEvent]:
        return await fetch_events(
            self.store, calendars, period_range.start_date, period_range.end_date, self.max_concurrency
        )

    async def _category_events(self, period_range: PeriodRange) -> list[CalendarEvent]:
        # Per-calendar failures are absorbed by the fan-out; only listing can fail here
        try:
            return await fetch_category_events(
                self.store,
                self.config.calendar_map,
                period_range.start_date,
                period_range.end_date,
                self.max_concurrency,
            )
        except Exception as e:
            raise UpstreamError("Failed to list calendars", cause=e)

    def _render_chart(self, stats, label: str, chart_type: str) -> bytes | None:
        if self.renderer is None:
            logger.warning("Chart requested but no chart renderer is configured")
            return None
        try:
            return self.renderer.render(stats, label, chart_type)
        except Exception as e:
            logger.warning("Chart generation failed, continuing without chart: %s", e)
            return None

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def log_activity(self, args: LogActivityInput, clock: ReferenceClock) -> ToolResult:
        """
        Write one activity to its category calendar.

        The category is taken from the input or inferred from the title; an
        inference with no or low confidence returns a follow-up instead,
        unless allow_low_confidence is set. Missing times chain off the last
        logged activity and end now.
        """
        offset = clock.utc_offset_minutes
        was_inferred = False
        confidence = None

        if args.category:
            category = normalize_category(args.category)
        else:
            classification = classify(args.title, self.config.keywords)
            pending = args.model_dump(by_alias=True, exclude_none=True)
            if classification.category is None:
                return category_follow_up(args.title, pending)
            if classification.confidence == "low" and not args.allow_low_confidence:
                return category_follow_up(
                    args.title, {**pending, "category": classification.category.value}, classification.category
                )
            category = classification.category
            confidence = classification.confidence
            was_inferred = True

        end_time = resolve_end_time(args.end_time, clock.now, offset)
        if args.start_time:
            start_time = resolve_start_time(args.start_time, None, clock.now, offset)

        calendars = await self._list_calendars()
        calendar = self._require_calendar(calendars, self.config.calendar_map[category])

        if not args.start_time:
            last_end = await self.last_event_end(clock, calendars)
            start_time = resolve_start_time(None, last_end, clock.now, offset)

        entry = ActivityLogEntry(
            title=args.title,
            category=category,
            start_time=start_time,
            end_time=end_time,
            time_zone=args.time_zone,
            description=args.description,
        )
        warnings = check_entry_times(entry)

        try:
            created = await self.store.create_event(calendar.id, entry)
        except Exception as e:
            raise UpstreamError(f"Failed to create event in {calendar.name}", cause=e)

        logger.info("Logged '%s' to %s", entry.title, calendar.name)
        text = (
            f'✅ Activity logged: "{entry.title}" to {CATEGORY_LABELS[category]} calendar '
            f"({format_clock(entry.start_time, offset)} - {format_clock(entry.end_time, offset)})"
        )
        if was_inferred:
            text += " (category auto-detected)"
        for warning in warnings:
            text += f"\n⚠️ {warning}"

        return ToolResult(
            text=text,
            structured={
                "success": True,
                "eventId": created.id,
                "title": entry.title,
                "category": category.value,
                "calendar": calendar.name,
                "startTime": entry.start_time.isoformat(),
                "endTime": entry.end_time.isoformat(),
                "categoryInferred": was_inferred,
                "categoryConfidence": confidence,
                "webLink": created.web_link,
                "warnings": warnings,
            },
            warnings=warnings,
        )

    async def log_highlight(self, args: LogHighlightInput, clock: ReferenceClock) -> ToolResult:
        """Write an all-day highlight, prefixed with its type's emoji."""
        day = parse_date_string(args.date, field="date") if args.date else clock.today
        calendar_name = args.calendar or self.config.highlights_calendar
        title = f"{HIGHLIGHT_EMOJI[args.type]} {args.title}"

        calendars = await self._list_calendars()
        calendar = self._require_calendar(calendars, calendar_name)
        try:
            created = await self.store.create_all_day_event(calendar.id, title, day, args.description or "")
        except Exception as e:
            raise UpstreamError(f"Failed to create highlight in {calendar.name}", cause=e)

        return ToolResult(
            text=f'{HIGHLIGHT_EMOJI[args.type]} Highlight logged: "{args.title}" on {day.isoformat()}',
            structured={
                "success": True,
                "eventId": created.id,
                "title": title,
                "type": args.type,
                "date": day.isoformat(),
                "calendar": calendar.name,
            },
        )

    async def list_calendars(self, clock: ReferenceClock | None = None) -> ToolResult:
        calendars = await self._list_calendars()
        names = ", ".join(calendar.name for calendar in calendars) or "none"
        return ToolResult(
            text=f"Found {len(calendars)} calendars: {names}",
            structured={
                "calendars": [
                    {
                        "id": calendar.id,
                        "name": calendar.name,
                        "isDefault": calendar.is_default,
                        "canEdit": calendar.can_edit,
                    }
                    for calendar in calendars
                ]
            },
        )

    async def query_events(self, args: QueryEventsInput, clock: ReferenceClock) -> ToolResult:
        """
        List events for a day or date range.

        Without a calendar name every category calendar is searched and
        each event is tagged with its category.
        """
        offset = clock.utc_offset_minutes
        if args.date:
            spec = SingleDate(args.date)
        elif args.from_date or args.to_date:
            spec = CustomPeriod(args.from_date, args.to_date)
        else:
            spec = SingleDate(clock.today)
        period_range = resolve_period(spec, clock.now, offset)
        range_days(period_range)

        if args.calendar:
            calendars = await self._list_calendars()
            calendar = find_calendar(calendars, args.calendar)
            if calendar is None:
                raise ValidationError(f"Calendar not found: {args.calendar}", field="calendar")
            events = await self._fetch([calendar], period_range)
            tagged = [(event, None) for event in events]
        else:
            events = await self._category_events(period_range)
            tagged = [(event, category_for_calendar(event.calendar_name)) for event in events]

        if not events:
            text = f"No events found for {period_range.label}."
        else:
            lines = [f"Found {len(events)} events for {period_range.label}:", ""]
            for event, category in tagged:
                marker = EVENT_MARKERS.get(category, "•")
                if event.all_day or event.start is None or event.end is None:
                    when = "All day"
                else:
                    when = f"{format_clock(event.start, offset)} - {format_clock(event.end, offset)}"
                lines.append(f"{marker} {when}: {event.title}")
            text = "\n".join(lines)

        chart = None
        if args.include_chart and events:
            stats = aggregate(events, period_range)
            if stats.total_minutes > 0:
                chart_type = args.chart_type or default_chart_type(period_range)
                chart = self._render_chart(stats, period_range.label, chart_type)

        return ToolResult(
            text=text,
            structured={
                "period": period_range.label,
                "startDate": period_range.start_date.isoformat(),
                "endDate": period_range.end_date.isoformat(),
                "count": len(events),
                "events": [event_to_dict(event, category) for event, category in tagged],
            },
            chart=chart,
        )

    async def get_time_stats(self, args: TimeStatsInput, clock: ReferenceClock) -> ToolResult:
        """Aggregate tracked time per category over a period."""
        if args.date:
            spec = SingleDate(args.date)
        elif args.period == "custom":
            spec = CustomPeriod(args.from_date, args.to_date)
        else:
            spec = NamedPeriod(args.period)
        period_range = resolve_period(spec, clock.now, clock.utc_offset_minutes)
        range_days(period_range)

        events = await self._category_events(period_range)
        stats = aggregate(events, period_range)

        chart = None
        if args.include_chart and stats.total_minutes > 0:
            chart_type = args.chart_type or default_chart_type(period_range)
            chart = self._render_chart(stats, period_range.label, chart_type)

        return ToolResult(
            text=format_stats_summary(stats, period_range.label),
            structured={
                "period": period_range.label,
                "startDate": period_range.start_date.isoformat(),
                "endDate": period_range.end_date.isoformat(),
                "stats": stats_to_dict(stats),
            },
            chart=chart,
        )

    async def process_message(self, args: ProcessMessageInput, clock: ReferenceClock) -> ToolResult:
        """
        Route a free-text message and, for a tier 1 match, log it.

        A failed last-event lookup only loses continuation; routing goes on
        as if there were no previous activity.
        """
        try:
            last_end = await self.last_event_end(clock)
        except UpstreamError as e:
            logger.warning("Failed to get last event end time: %s", e.cause or e)
            last_end = None

        context = RoutingContext(
            now=clock.now, last_event_end_time=last_end, utc_offset_minutes=clock.utc_offset_minutes
        )
        result = route(args.message, context, self.config.keywords)

        if isinstance(result, Escalation):
            return self._escalation_result(result)

        if isinstance(result, RoutingFailure):
            raise ValidationError(
                f"Could not understand the time '{result.detail}' in the message",
                field="message",
                details=["Use times like 9am, 2:30 pm or 14:30"],
            )

        return await self._handle_routed(result, args, clock)

    async def _handle_routed(self, result: RoutedEntry, args: ProcessMessageInput, clock: ReferenceClock) -> ToolResult:
        data = result.data
        extracted = data.to_dict()

        if not args.auto_execute:
            return ToolResult(
                text=f'Extracted "{data.title}" ({data.category_confidence} confidence), ready to log.',
                structured={"success": True, "tier": 1, "readyToLog": True, "extractedData": extracted},
            )

        log_args = LogActivityInput(
            title=data.title,
            category=data.category.value if data.category else None,
            start_time=data.start_time.isoformat(),
            end_time=data.end_time.isoformat(),
            allow_low_confidence=True,
        )
        if data.category is None:
            return category_follow_up(data.title, log_args.model_dump(by_alias=True, exclude_none=True))

        logged = await self.log_activity(log_args, clock)

        text = f"⚡ Pattern-based processing (Tier 1):\n{logged.text}"
        if data.category_confidence == "low":
            text += (
                f"\n\nNote: {CATEGORY_LABELS[data.category]} was a low-confidence guess. "
                "Say so if it belongs in another category."
            )
        return ToolResult(
            text=text,
            structured={
                "success": True,
                "tier": 1,
                "extractedData": extracted,
                "logResult": logged.structured,
            },
            warnings=logged.warnings,
        )

    def _escalation_result(self, escalation: Escalation) -> ToolResult:
        partial = escalation.partial_data.to_dict() if escalation.partial_data else None
        return ToolResult(
            text=(
                "🔄 Pattern extraction could not fully parse this message "
                f"({escalation.reason}). Interpret it and call diary.log with "
                "title, category, startTime and endTime."
            ),
            structured={
                "success": False,
                "tier": 2,
                "code": ErrorCodes.ESCALATION_REQUIRED,
                "reason": escalation.reason,
                "needsInterpreter": True,
                "originalMessage": escalation.original_message,
                "partialData": partial,
            },
            status="escalation",
        )

    async def check_health(self) -> dict:
        """
        Report store reachability and category calendar presence.

        unhealthy: store unreachable; degraded: some category calendars
        missing; healthy otherwise.
        """
        checks = {}
        try:
            calendars = await self.store.list_calendars()
        except Exception as e:
            logger.warning("Health check could not reach the calendar store: %s", e)
            checks["calendarStore"] = {"status": "error", "message": str(e)}
            return {"status": "unhealthy", "checks": checks}

        checks["calendarStore"] = {"status": "ok", "message": f"{len(calendars)} calendars"}
        found = find_category_calendars(calendars, self.config.calendar_map)
        missing = [name for category, name in self.config.calendar_map.items() if category not in found]
        if missing:
            checks["categoryCalendars"] = {"status": "warning", "message": f"Missing: {', '.join(missing)}"}
            return {"status": "degraded", "checks": checks}

        checks["categoryCalendars"] = {"status": "ok", "message": "All category calendars present"}
        return {"status": "healthy", "checks": checks}
