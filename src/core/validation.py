"""
Input validation and entry sanity checks.
"""

import logging
from datetime import date, datetime

from core.errors import ValidationError
from models.events import ActivityLogEntry, Category

logger = logging.getLogger(__name__)

# Accepted spellings -> category
CATEGORY_ALIASES = {
    "prod": Category.PROD,
    "productive": Category.PROD,
    "work": Category.PROD,
    "nonprod": Category.NONPROD,
    "non-prod": Category.NONPROD,
    "nonproductive": Category.NONPROD,
    "non-productive": Category.NONPROD,
    "leisure": Category.NONPROD,
    "admin": Category.ADMIN,
    "rest": Category.ADMIN,
    "routine": Category.ADMIN,
}


def normalize_category(value: str | Category) -> Category:
    """Map a category name or alias onto a Category."""
    if isinstance(value, Category):
        return value
    normalized = (value or "").strip().lower()
    if normalized in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[normalized]
    raise ValidationError(
        f"Invalid category: '{value}'. Must be 'prod' (productive), "
        "'nonprod' (non-productive), or 'admin' (routine/rest).",
        field="category",
        details=[f"Valid options: {', '.join(c.value for c in Category)}"],
    )


def parse_date_string(value: str | date, field: str = "date") -> date:
    """Parse a YYYY-MM-DD string, raising ValidationError on anything else."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError(
            f"Invalid date format: {value}. Use YYYY-MM-DD format.",
            field=field,
            details=["Expected format: YYYY-MM-DD"],
        )


def check_entry_times(entry: ActivityLogEntry) -> list[str]:
    """
    Check an entry's time ordering.

    Start at or after end is allowed (same-minute logging, clock tokens that
    would roll past midnight) but reported as a warning.
    """
    warnings = []
    if entry.start_time >= entry.end_time:
        message = (
            f"Start time ({entry.start_time.isoformat()}) is not before "
            f"end time ({entry.end_time.isoformat()})"
        )
        logger.warning(message)
        warnings.append(message)
    return warnings
