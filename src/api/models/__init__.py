"""API Pydantic models."""

from .responses import (
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    RpcCodes,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "RpcCodes",
]
