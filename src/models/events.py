"""
Data models for diary entries, routing results and statistics.

Plain dataclasses shared by the services; the API layer wraps them in
Pydantic models where it needs request validation.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Literal


class Category(str, Enum):
    """Loggable activity category, one calendar each."""

    PROD = "prod"
    NONPROD = "nonprod"
    ADMIN = "admin"


Confidence = Literal["none", "low", "medium", "high"]
TimeSource = Literal["explicit", "continuation", "now"]


@dataclass(frozen=True)
class ClassificationResult:
    """Category inferred from a title."""

    category: Category | None
    confidence: Confidence
    scores: dict[Category, int] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ActivityLogEntry:
    """A timed activity ready to be written to a category calendar."""

    title: str
    category: Category
    start_time: datetime
    end_time: datetime
    time_zone: str
    description: str | None = None


@dataclass(frozen=True)
class ParsedMessage:
    """Fields extracted from one free-text message."""

    title: str | None = None
    category: Category | None = None
    category_confidence: Confidence = "none"
    start_time: datetime | None = None
    end_time: datetime | None = None
    time_source: TimeSource = "now"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "category": self.category.value if self.category else None,
            "categoryConfidence": self.category_confidence,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "timeSource": self.time_source,
        }


@dataclass(frozen=True)
class RoutedEntry:
    """Tier 1 succeeded: title, start and end are all known."""

    data: ParsedMessage
    tier: Literal[1] = 1
    success: Literal[True] = True

    @property
    def needs_confirmation(self) -> bool:
        return self.data.category_confidence in ("none", "low")


@dataclass(frozen=True)
class RoutingFailure:
    """Tier 1 recognised a log request but a time phrase did not parse."""

    reason: str
    partial_data: ParsedMessage
    detail: str | None = None
    tier: Literal[1] = 1
    success: Literal[False] = False


@dataclass(frozen=True)
class Escalation:
    """Tier 2: hand the original message to an external interpreter."""

    reason: str
    partial_data: ParsedMessage | None
    original_message: str
    tier: Literal[2] = 2
    needs_interpreter: bool = True


RoutingResult = RoutedEntry | RoutingFailure | Escalation


@dataclass(frozen=True)
class PeriodRange:
    """Inclusive local-day range; start at midnight, end at 23:59:59.999."""

    start_date: datetime
    end_date: datetime
    label: str

    @property
    def is_single_day(self) -> bool:
        return self.start_date.date() == self.end_date.date()


@dataclass(frozen=True)
class DailyBucket:
    """Minutes per category for one local day."""

    date: str
    display_label: str
    prod: int = 0
    nonprod: int = 0
    admin: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "displayDate": self.display_label,
            "prod": self.prod,
            "nonprod": self.nonprod,
            "admin": self.admin,
            "total": self.total,
        }


@dataclass(frozen=True)
class TimeStats:
    """Aggregated minutes for a period, overall and per day."""

    prod: int
    nonprod: int
    admin: int
    total_minutes: int
    daily_breakdown: dict[str, DailyBucket]

    def minutes(self, category: Category) -> int:
        return getattr(self, category.value)

    def hours(self, category: Category | None = None) -> float:
        minutes = self.total_minutes if category is None else self.minutes(category)
        return round(minutes / 60, 1)

    def percentage(self, category: Category) -> float:
        if self.total_minutes == 0:
            return 0
        return self.minutes(category) / self.total_minutes * 100


@dataclass(frozen=True)
class CalendarInfo:
    """Calendar listing entry."""

    id: str
    name: str
    is_default: bool = False
    can_edit: bool = True


@dataclass(frozen=True)
class CalendarEvent:
    """Calendar event as read back from the store."""

    id: str
    title: str
    start: datetime | None
    end: datetime | None
    calendar_name: str = ""
    all_day: bool = False
    description: str | None = None
    event_date: date | None = None


@dataclass(frozen=True)
class CreatedEvent:
    """Event returned by the store after a write."""

    id: str
    title: str
    start: str | None
    end: str | None
    web_link: str | None = None
