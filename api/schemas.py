"""
API Schemas
===========

Pydantic models for API request/response validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from sql_analyst.models import Step


class ChatMessage(BaseModel):
    """One message of the conversation."""

    role: Literal["user", "assistant", "system"] = Field(..., description="Message author")
    content: str | list[dict[str, Any]] = Field(
        ...,
        description="Plain text, or a list of parts of which only text parts are kept",
    )


class ChatRequest(BaseModel):
    """Request body for a conversation."""

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        description="Chat history ending with the user's question",
        examples=[[{"role": "user", "content": "How many companies are in the Technology industry?"}]],
    )
    model: str | None = Field(
        default=None,
        description="Model selector, e.g. 'openai/gpt-4o' (default: configured model)",
    )


class ToolCallResponse(BaseModel):
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResultResponse(BaseModel):
    tool_call_id: str
    tool_name: str
    output: Any = None
    is_error: bool = False


class StepResponse(BaseModel):
    """One streamed step."""

    type: Literal["step"] = "step"
    index: int
    phase: str
    text: str = ""
    tool_calls: list[ToolCallResponse] = Field(default_factory=list)
    tool_results: list[ToolResultResponse] = Field(default_factory=list)

    @classmethod
    def from_step(cls, step: Step) -> "StepResponse":
        return cls(
            index=step.index,
            phase=step.phase.value,
            text=step.text,
            tool_calls=[
                ToolCallResponse(id=c.id, name=c.name, arguments=c.arguments)
                for c in step.tool_calls
            ],
            tool_results=[
                ToolResultResponse(
                    tool_call_id=r.tool_call_id,
                    tool_name=r.tool_name,
                    output=r.output,
                    is_error=r.is_error,
                )
                for r in step.tool_results
            ],
        )


class RunSummaryResponse(BaseModel):
    """Final line of a streamed conversation."""

    type: Literal["done"] = "done"
    request_id: str
    termination: str | None = Field(None, description="Why the run stopped")
    phase: str
    steps: int
    report: dict[str, Any] | None = Field(None, description="FinalizeReport payload, if any")
    processing_time_ms: float


class StreamErrorResponse(BaseModel):
    """Emitted when a collaborator fails mid-stream."""

    type: Literal["error"] = "error"
    request_id: str
    error: str
    message: str
    steps: int


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
