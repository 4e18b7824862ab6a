"""Pydantic response models for API endpoints."""

from typing import Any, Literal

from pydantic import BaseModel

from core.errors import ErrorCodes


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy", "degraded" or "unhealthy"
    version: str
    timestamp: str  # ISO 8601 UTC
    tools: int
    checks: dict[str, dict[str, str]] = {}
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request envelope. A missing id marks a notification."""

    jsonrpc: Literal["2.0"]
    method: str
    params: dict[str, Any] | None = None
    id: int | str | None = None


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: dict[str, Any] | None = None


class JsonRpcResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None


# JSON-RPC error numbers
class RpcCodes:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    UPSTREAM_ERROR = -32000
    TOOL_NOT_FOUND = -32003


__all__ = [
    "ErrorCodes",
    "ErrorResponse",
    "HealthResponse",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "RpcCodes",
]
