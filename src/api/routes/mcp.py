"""JSON-RPC (MCP) endpoint exposing the diary tools."""

import json
import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from api.dependencies import get_diary_service, get_utc_offset
from api.logging import RequestLog, log_request
from models.inputs import (
    LogActivityInput,
    LogHighlightInput,
    ProcessMessageInput,
    QueryEventsInput,
    TimeStatsInput,
    parse_tool_input,
)
from api.models.responses import ErrorCodes, JsonRpcError, JsonRpcRequest, JsonRpcResponse, RpcCodes
from core.config import API_VERSION, PROTOCOL_VERSION, SERVER_NAME
from core.errors import DiaryError, UpstreamError, ValidationError
from services.diary import DiaryService, ReferenceClock

logger = logging.getLogger(__name__)

router = APIRouter()

# tool name -> (input model, DiaryService method, description)
TOOL_HANDLERS = {
    "diary.log": (
        LogActivityInput,
        "log_activity",
        "Log an activity to the Productive, Non-productive or Admin/Rest calendar. "
        "Category is inferred from the title when omitted; start defaults to the end "
        "of the last logged activity and end defaults to now.",
    ),
    "diary.logHighlight": (
        LogHighlightInput,
        "log_highlight",
        "Log an all-day highlight, milestone, achievement or memory.",
    ),
    "diary.listCalendars": (
        None,
        "list_calendars",
        "List the available calendars.",
    ),
    "diary.queryEvents": (
        QueryEventsInput,
        "query_events",
        "List events for a date (YYYY-MM-DD), a from/to range, or today, optionally with a chart.",
    ),
    "diary.getTimeStats": (
        TimeStatsInput,
        "get_time_stats",
        "Time spent per category for a period (today, yesterday, this_week, last_week, "
        "this_month, last_month, custom), optionally with a chart.",
    ),
    "diary.processMessage": (
        ProcessMessageInput,
        "process_message",
        "Parse a free-text message such as 'log coding from 9am to 11am' and log it. "
        "Messages that cannot be parsed come back for interpretation.",
    ),
}


class RpcFailure(Exception):
    """A JSON-RPC error to send back to the caller."""

    def __init__(self, code: int, message: str, data: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def list_tools() -> list[dict]:
    tools = []
    for name, (model, _, description) in TOOL_HANDLERS.items():
        if model is None:
            schema = {"type": "object", "properties": {}}
        else:
            schema = model.model_json_schema(by_alias=True)
        tools.append({"name": name, "description": description, "inputSchema": schema})
    return tools


def rpc_response(request_id, result: dict | None = None, error: RpcFailure | None = None) -> JSONResponse:
    if error is not None:
        body = JsonRpcResponse(
            id=request_id,
            error=JsonRpcError(code=error.code, message=error.message, data=error.data),
        ).model_dump(exclude={"result"})
    else:
        body = JsonRpcResponse(id=request_id, result=result or {}).model_dump(exclude={"error"})
    return JSONResponse(content=body)


async def call_tool(service: DiaryService, params: dict, clock: ReferenceClock, request_log: RequestLog) -> dict:
    """Validate tool arguments and run the tool."""
    name = params.get("name")
    request_log.tool_name = name
    if name not in TOOL_HANDLERS:
        raise RpcFailure(
            RpcCodes.TOOL_NOT_FOUND,
            f"Unknown tool: {name}",
            {"code": ErrorCodes.TOOL_NOT_FOUND, "details": [f"Available: {', '.join(TOOL_HANDLERS)}"]},
        )

    model, method_name, _ = TOOL_HANDLERS[name]
    handler = getattr(service, method_name)
    if model is None:
        result = await handler(clock)
    else:
        args = parse_tool_input(model, params.get("arguments"))
        result = await handler(args, clock)

    request_log.result_status = result.status
    for warning in result.warnings:
        request_log.details.append(("warning", warning))
    return result.to_dict()


async def dispatch(rpc: JsonRpcRequest, service: DiaryService, clock: ReferenceClock, request_log: RequestLog) -> dict:
    method = rpc.method
    params = rpc.params or {}

    if method == "initialize":
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": API_VERSION},
        }
    if method in ("initialized", "notifications/initialized", "ping"):
        return {}
    if method == "tools/list":
        return {"tools": list_tools()}
    if method == "tools/call":
        return await call_tool(service, params, clock, request_log)
    if method == "resources/list":
        return {"resources": []}
    if method == "prompts/list":
        return {"prompts": []}

    raise RpcFailure(
        RpcCodes.METHOD_NOT_FOUND,
        f"Method not found: {method}",
        {"code": ErrorCodes.METHOD_NOT_FOUND},
    )


async def handle_rpc(
    request: Request, service: DiaryService, clock: ReferenceClock, request_log: RequestLog
) -> Response:
    """Parse, dispatch and map errors onto JSON-RPC error codes."""
    request_id = None
    try:
        try:
            payload = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RpcFailure(
                RpcCodes.PARSE_ERROR, "Parse error", {"code": ErrorCodes.INVALID_REQUEST, "details": [str(e)]}
            )

        if isinstance(payload, dict):
            request_id = payload.get("id")
        try:
            rpc = JsonRpcRequest.model_validate(payload)
        except PydanticValidationError as e:
            details = [error.get("msg", "") for error in e.errors()]
            raise RpcFailure(
                RpcCodes.INVALID_REQUEST, "Invalid Request", {"code": ErrorCodes.INVALID_REQUEST, "details": details}
            )

        request_log.rpc_method = rpc.method
        result = await dispatch(rpc, service, clock, request_log)

        # Notifications get no body
        if rpc.id is None:
            return Response(status_code=202)
        return rpc_response(rpc.id, result=result)

    except RpcFailure as e:
        failure = e

    except ValidationError as e:
        request_log.details.extend(("validation_error", detail) for detail in e.details or [e.message])
        failure = RpcFailure(RpcCodes.INVALID_PARAMS, e.message, e.to_dict())

    except UpstreamError as e:
        logger.warning("Upstream failure: %s (%s)", e.message, e.cause)
        request_log.details.extend(("upstream_error", detail) for detail in e.details)
        failure = RpcFailure(RpcCodes.UPSTREAM_ERROR, e.message, {**e.to_dict(), "retryable": True})

    except DiaryError as e:
        logger.exception("Unhandled diary error")
        failure = RpcFailure(RpcCodes.INTERNAL_ERROR, e.message, e.to_dict())

    except Exception as e:
        logger.exception("Unexpected error handling JSON-RPC request")
        failure = RpcFailure(
            RpcCodes.INTERNAL_ERROR,
            "Internal error",
            {"error": str(e), "code": ErrorCodes.INTERNAL_ERROR, "details": []},
        )

    request_log.rpc_error_code = failure.code
    request_log.error_message = failure.message
    if failure.data:
        request_log.error_code = failure.data.get("code")
    return rpc_response(request_id, error=failure)


@router.post("/mcp")
async def mcp_endpoint(
    request: Request,
    utc_offset: int = Depends(get_utc_offset),
    service: DiaryService = Depends(get_diary_service),
):
    """
    JSON-RPC 2.0 entry point.

    Errors are returned in the JSON-RPC error envelope with HTTP 200;
    error.data.code carries the machine-readable category.
    """
    start_time = time.time()
    clock = ReferenceClock.capture(utc_offset)

    request_log = RequestLog(
        endpoint="/mcp",
        method="POST",
        client_ip=get_client_ip(request),
        utc_offset_minutes=utc_offset,
    )

    try:
        response = await handle_rpc(request, service, clock, request_log)
        request_log.status_code = response.status_code
        return response
    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        # Always log the request
        try:
            log_request(request_log)
        except Exception as e:
            # Don't fail the request if logging fails
            logger.debug("Request logging failed: %s", e)
