"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import NOT_CONFIGURED_HINT, get_optional_diary_service
from api.models.responses import HealthResponse
from api.routes.mcp import TOOL_HANDLERS
from core.config import API_VERSION
from services.diary import DiaryService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(service: DiaryService | None = Depends(get_optional_diary_service)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy or degraded, 503 if unhealthy or not configured.
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    if service is None:
        report = {
            "status": "unhealthy",
            "checks": {"configuration": {"status": "error", "message": NOT_CONFIGURED_HINT}},
        }
        error = "Calendar store not configured"
    else:
        report = await service.check_health()
        error = "Calendar store unreachable"

    if report["status"] != "unhealthy":
        return HealthResponse(
            status=report["status"],
            version=API_VERSION,
            timestamp=timestamp,
            tools=len(TOOL_HANDLERS),
            checks=report["checks"],
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                timestamp=timestamp,
                tools=len(TOOL_HANDLERS),
                checks=report["checks"],
                error=error,
            ).model_dump(),
        )
