"""
Two-tier routing of free-text log messages.

Tier 1 extracts title, times and category with patterns. When that is not
enough the message is escalated (tier 2) to an external interpreter, which
is expected to call back with structured arguments.
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.config import DEFAULT_CATEGORY_KEYWORDS
from core.timeparse import parse_time
from models.events import Category, Escalation, ParsedMessage, RoutedEntry, RoutingFailure, RoutingResult
from services.classifier import classify

# =============================================================================
# PATTERNS
# =============================================================================

# A clock-ish token: "9", "9am", "9:30", "9:30 pm", "14:30"
TOKEN = r"\d{1,2}(?::\d{2})?\s*(?:am|pm)?"
# A token that cannot be a plain number: needs minutes or am/pm
CLOCK = r"\d{1,2}(?::\d{2}\s*(?:am|pm)?|\s*(?:am|pm))"

LOG_ACTION_PATTERNS = [
    re.compile(r"^(log|record|track|add|note)\b"),
    re.compile(r"^(i\s+)?(just\s+)?(finished|completed|did)\s+\w"),
    re.compile(r"^(i\s+)?(just\s+)?(worked\s+on|started)\s+\w"),
    re.compile(r"^(i\s+)?spent\s+\w"),
]

NON_LOG_PATTERNS = [
    re.compile(r"^(how|what|when|where|why|who|which|show|get|display|tell|give|find)\b"),
    re.compile(r"\?$"),
    re.compile(r"^(can|could|would|should|is|are|was|were|do|does|did)\s+(you|i|it|this|that|the|my)\b"),
    re.compile(r"my\s+(day|time|stats|data|history|events|activities)\b"),
]

ACTION_PREFIXES = [
    re.compile(r"^(log|record|track|add|note)\s+(that\s+)?", re.IGNORECASE),
    re.compile(r"^(i\s+)?(just\s+)?(did|finished|completed|started|worked\s+on)\s+", re.IGNORECASE),
    re.compile(r"^(i\s+)?(spent\s+time\s+on|spent|was\s+doing)\s+", re.IGNORECASE),
]

RANGE_PATTERNS = [
    re.compile(rf"\bfrom\s+({TOKEN})\s*(?:to|until|till|-)\s*({TOKEN})", re.IGNORECASE),
    re.compile(rf"\bbetween\s+({TOKEN})\s+and\s+({TOKEN})", re.IGNORECASE),
    re.compile(rf"\b({TOKEN})\s*(?:to|until|till|-)\s*({CLOCK})\b", re.IGNORECASE),
    re.compile(rf"\b({CLOCK})\s*(?:to|until|till|-)\s*({TOKEN})\b", re.IGNORECASE),
]

START_PATTERN = re.compile(rf"\b(?:at|since|starting(?:\s+at)?|from)\s+({TOKEN})\b", re.IGNORECASE)
END_PATTERN = re.compile(rf"\b(?:until|till|ending(?:\s+at)?|ended\s+at)\s+({TOKEN})\b", re.IGNORECASE)

# "for 2 hours", "90 minutes", "1.5h"
DURATION_PATTERN = re.compile(
    r"\b(?:for\s+)?(\d+(?:\.\d+)?)\s*(hours?|hrs?|h|minutes?|mins?|m)\b", re.IGNORECASE
)

MERIDIEM = re.compile(r"(am|pm)$", re.IGNORECASE)
# 12-hour candidates; "09:30" and "14:30" stay 24-hour
TWELVE_HOUR = re.compile(r"[1-9]|1[0-2]")


@dataclass(frozen=True)
class RoutingContext:
    """Per-request inputs: one reference clock and the last logged end."""

    now: datetime
    last_event_end_time: datetime | None = None
    utc_offset_minutes: int = 0


@dataclass(frozen=True)
class TimeInfo:
    start_time: datetime | None
    end_time: datetime | None
    source: str
    invalid: str | None = None


# =============================================================================
# EXTRACTION
# =============================================================================


def is_log_request(message: str) -> bool:
    """Whether the message reads as a request to log something."""
    normalized = message.strip().lower()
    if any(pattern.search(normalized) for pattern in NON_LOG_PATTERNS):
        return False
    return any(pattern.search(normalized) for pattern in LOG_ACTION_PATTERNS)


def strip_time_phrases(text: str) -> str:
    for pattern in RANGE_PATTERNS + [START_PATTERN, END_PATTERN, DURATION_PATTERN]:
        text = pattern.sub(" ", text)
    return text


def extract_title(message: str) -> str | None:
    """Message minus action verbs and time phrases."""
    title = message.strip()
    for prefix in ACTION_PREFIXES:
        title = prefix.sub("", title)
    title = strip_time_phrases(title)
    title = re.sub(r"\s+", " ", title)
    title = re.sub(r"^[\s,.\-]+|[\s,.\-]+$", "", title)
    return title or None


def find_duration(message: str) -> timedelta | None:
    match = DURATION_PATTERN.search(message)
    if not match:
        return None
    value = float(match.group(1))
    if match.group(2).lower().startswith("h"):
        return timedelta(hours=value)
    return timedelta(minutes=value)


def takes_meridiem(token: str) -> bool:
    hour = token.strip().split(":")[0]
    return TWELVE_HOUR.fullmatch(hour) is not None


def share_meridiem(first: str, second: str) -> tuple[str, str]:
    """Give a bare side of a range the other side's am/pm ("9-11am", "2:30 to 4pm")."""
    first_suffix = MERIDIEM.search(first.strip())
    second_suffix = MERIDIEM.search(second.strip())
    if second_suffix and not first_suffix and takes_meridiem(first):
        first = f"{first.strip()}{second_suffix.group(1)}"
    elif first_suffix and not second_suffix and takes_meridiem(second):
        second = f"{second.strip()}{first_suffix.group(1)}"
    return first, second


def extract_time_info(message: str, context: RoutingContext) -> TimeInfo:
    """
    Work out start and end instants from the time phrases in a message.

    Precedence: explicit range, then a single anchor with or without a
    duration, then duration alone, then continuation from the last event.
    """
    now = context.now
    offset = context.utc_offset_minutes
    last_end = context.last_event_end_time

    def parse(token: str) -> datetime | None:
        return parse_time(token.strip(), now, offset)

    for pattern in RANGE_PATTERNS:
        match = pattern.search(message)
        if match:
            first, second = share_meridiem(match.group(1), match.group(2))
            start, end = parse(first), parse(second)
            if start is None or end is None:
                bad = first if start is None else second
                return TimeInfo(start, end, "explicit", invalid=bad.strip())
            return TimeInfo(start, end, "explicit")

    duration = find_duration(message)
    start_match = START_PATTERN.search(message)
    end_match = END_PATTERN.search(message)

    if start_match:
        start = parse(start_match.group(1))
        if start is None:
            return TimeInfo(None, None, "explicit", invalid=start_match.group(1).strip())
        end = start + duration if duration else now
        return TimeInfo(start, end, "explicit")

    if end_match:
        end = parse(end_match.group(1))
        if end is None:
            return TimeInfo(None, None, "explicit", invalid=end_match.group(1).strip())
        if duration:
            return TimeInfo(end - duration, end, "explicit")
        if last_end is not None:
            return TimeInfo(last_end, end, "continuation")
        return TimeInfo(None, end, "explicit")

    if duration:
        if last_end is not None:
            return TimeInfo(last_end, last_end + duration, "continuation")
        return TimeInfo(now - duration, now, "now")

    if last_end is not None:
        return TimeInfo(last_end, now, "continuation")
    return TimeInfo(None, now, "now")


# =============================================================================
# ROUTING
# =============================================================================


def route(
    message: str,
    context: RoutingContext,
    keywords: Mapping[Category, Sequence[str]] = DEFAULT_CATEGORY_KEYWORDS,
) -> RoutingResult:
    """
    Route one message through the two tiers.

    Returns a RoutedEntry when title, start and end are all known, a
    RoutingFailure when a time phrase is present but unparseable, and an
    Escalation otherwise. Low category confidence never blocks tier 1.
    """
    if not is_log_request(message):
        return Escalation(reason="not_log_request", partial_data=None, original_message=message)

    title = extract_title(message)
    if not title:
        return Escalation(reason="no_activity_found", partial_data=None, original_message=message)

    classification = classify(title, keywords)
    time_info = extract_time_info(message, context)

    data = ParsedMessage(
        title=title,
        category=classification.category,
        category_confidence=classification.confidence,
        start_time=time_info.start_time,
        end_time=time_info.end_time,
        time_source=time_info.source,
    )

    if time_info.invalid is not None:
        return RoutingFailure(reason="invalid_time", partial_data=data, detail=time_info.invalid)

    if data.start_time is None:
        reason = "no_start_time" if time_info.source == "explicit" else "no_time_information"
        return Escalation(reason=reason, partial_data=data, original_message=message)

    return RoutedEntry(data=data)
