"""
Error taxonomy shared by the services and the API layer.
"""


class ErrorCodes:
    """Error code constants."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AMBIGUOUS_CATEGORY = "AMBIGUOUS_CATEGORY"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    ESCALATION_REQUIRED = "ESCALATION_REQUIRED"
    INVALID_REQUEST = "INVALID_REQUEST"
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DiaryError(Exception):
    """Base class for errors surfaced to callers."""

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(DiaryError, ValueError):
    """Bad input; raised before any calendar call is attempted."""

    code = ErrorCodes.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None, details: list[str] | None = None):
        super().__init__(message, details)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class UpstreamError(DiaryError):
    """A calendar store call failed. Safe for the caller to retry."""

    code = ErrorCodes.UPSTREAM_ERROR

    def __init__(self, message: str, cause: Exception | None = None):
        details = [str(cause)] if cause else []
        super().__init__(message, details)
        self.cause = cause
