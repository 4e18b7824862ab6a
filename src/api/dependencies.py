"""FastAPI dependencies for shared resources and per-request context."""

from fastapi import Depends, Header, HTTPException, status

from core.config import DIARY_USER_ID
from core.graph_client import graph_configured
from services.calendar import GraphCalendarStore
from services.diary import DiaryService
from services.reports import ExcelChartRenderer

# Offsets beyond +/-14h do not exist
MAX_OFFSET_MINUTES = 14 * 60
NOT_CONFIGURED_HINT = "Set MICROSOFT_GRAPH_* and DIARY_USER_ID"

_diary_service: DiaryService | None = None


def get_optional_diary_service() -> DiaryService | None:
    """
    Get or create the diary service backed by MS Graph (lazy initialization).

    Returns None while Graph credentials or the diary user are missing.
    """
    global _diary_service
    if _diary_service is None:
        if not graph_configured() or not DIARY_USER_ID:
            return None
        _diary_service = DiaryService(GraphCalendarStore(DIARY_USER_ID), ExcelChartRenderer())
    return _diary_service


def get_diary_service(
    service: DiaryService | None = Depends(get_optional_diary_service),
) -> DiaryService:
    """
    Diary service for tool calls.

    Raises:
        HTTPException: 500 if Graph credentials or the diary user are missing
    """
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Calendar store not configured on server",
                "code": "INTERNAL_ERROR",
                "details": [NOT_CONFIGURED_HINT],
            },
        )
    return service


async def get_utc_offset(
    x_utc_offset_minutes: str | None = Header(None, alias="X-UTC-Offset-Minutes"),
) -> int:
    """
    Caller's UTC offset in minutes east of UTC; 0 when the header is absent.

    Raises:
        HTTPException: 400 if the header is not a whole number in range
    """
    if x_utc_offset_minutes is None or not x_utc_offset_minutes.strip():
        return 0
    try:
        offset = int(x_utc_offset_minutes.strip())
    except ValueError:
        offset = None
    if offset is None or abs(offset) > MAX_OFFSET_MINUTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid X-UTC-Offset-Minutes header",
                "code": "INVALID_REQUEST",
                "details": [f"Expected whole minutes between -{MAX_OFFSET_MINUTES} and {MAX_OFFSET_MINUTES}"],
            },
        )
    return offset
