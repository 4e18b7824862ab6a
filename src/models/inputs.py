"""Pydantic input models for the diary tools."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from core.config import DEFAULT_TIME_ZONE
from core.errors import ValidationError

HighlightType = Literal["highlight", "milestone", "achievement", "memory"]
PeriodChoice = Literal["today", "yesterday", "this_week", "last_week", "this_month", "last_month", "custom"]
ChartChoice = Literal["bar", "pie", "doughnut"]


class ToolInput(BaseModel):
    """Base for tool arguments: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _non_blank(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class LogActivityInput(ToolInput):
    title: str
    category: str | None = None
    description: str | None = None
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    time_zone: str = Field(default=DEFAULT_TIME_ZONE, alias="timeZone")
    allow_low_confidence: bool = Field(default=False, alias="allowLowConfidence")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("category", "start_time", "end_time", "description")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        return _non_blank(value)


class LogHighlightInput(ToolInput):
    title: str
    description: str | None = None
    date: str | None = None
    type: HighlightType = "highlight"
    calendar: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("date", "calendar", "description")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        return _non_blank(value)


class QueryEventsInput(ToolInput):
    date: str | None = None
    from_date: str | None = Field(default=None, alias="from")
    to_date: str | None = Field(default=None, alias="to")
    calendar: str | None = None
    include_chart: bool = Field(default=False, alias="includeChart")
    chart_type: ChartChoice | None = Field(default=None, alias="chartType")

    @field_validator("date", "from_date", "to_date", "calendar")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        return _non_blank(value)


class TimeStatsInput(ToolInput):
    period: PeriodChoice = "this_week"
    date: str | None = None
    from_date: str | None = Field(default=None, alias="from")
    to_date: str | None = Field(default=None, alias="to")
    include_chart: bool = Field(default=False, alias="includeChart")
    chart_type: ChartChoice | None = Field(default=None, alias="chartType")

    @field_validator("date", "from_date", "to_date")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        return _non_blank(value)


class ProcessMessageInput(ToolInput):
    message: str
    auto_execute: bool = Field(default=True, alias="autoExecute")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message must not be empty")
        return value


def parse_tool_input(model: type[ToolInput], arguments: dict | None) -> ToolInput:
    """
    Validate raw tool arguments against a model.

    Raises:
        ValidationError: with the first failing field and one detail line
            per pydantic error
    """
    try:
        return model.model_validate(arguments or {})
    except PydanticValidationError as e:
        errors = e.errors()
        details = []
        for error in errors:
            location = ".".join(str(part) for part in error.get("loc", ()))
            details.append(f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", ""))
        first = errors[0] if errors else {}
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ValidationError(
            f"Invalid arguments: {details[0]}" if details else "Invalid arguments",
            field=field,
            details=details,
        )
