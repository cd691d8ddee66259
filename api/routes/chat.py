"""
Chat Routes
===========

Streaming conversation endpoint. Each completed step is written as one line
of newline-delimited JSON, followed by a final summary line.
"""

import json
import time
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from api.schemas import (
    ChatRequest,
    ErrorResponse,
    RunSummaryResponse,
    StepResponse,
    StreamErrorResponse,
)
from sql_analyst.agent import ConversationRun, SQLAnalystAgent
from sql_analyst.errors import TransportError
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Chat"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def get_agent(request: Request) -> SQLAnalystAgent:
    """Dependency to get the configured agent from app state."""
    return request.app.state.agent


def _line(payload) -> str:
    return json.dumps(payload.model_dump(mode="json"), default=str) + "\n"


def stream_run(run: ConversationRun, request_id: str) -> Iterator[str]:
    """
    Serialize a run as NDJSON lines while it executes.

    A TransportError ends the stream with an ``error`` line; the steps that
    completed before it have already been written.
    """
    start_time = time.perf_counter()
    try:
        for step in run:
            yield _line(StepResponse.from_step(step))
    except TransportError as e:
        logger.error("chat_stream_failed", request_id=request_id, error=str(e), steps=len(run.steps))
        yield _line(
            StreamErrorResponse(
                request_id=request_id,
                error=type(e).__name__,
                message=str(e),
                steps=len(run.steps),
            )
        )
        return

    yield _line(
        RunSummaryResponse(
            request_id=request_id,
            termination=run.termination.value if run.termination else None,
            phase=run.phase.value,
            steps=len(run.steps),
            report=run.report.model_dump() if run.report else None,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )
    )


@router.post(
    "/chat",
    responses={
        200: {"content": {NDJSON_MEDIA_TYPE: {}}, "description": "Stream of steps"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Answer a question about the database",
    description=(
        "Runs the phase-gated analyst over the conversation and streams each "
        "step as newline-delimited JSON"
    ),
)
def chat(
    body: ChatRequest,
    request: Request,
    agent: SQLAnalystAgent = Depends(get_agent),
) -> StreamingResponse:
    """
    Start a conversation run and stream its steps.

    Args:
        body: Chat history and optional model selector
        request: Incoming request (for the correlation ID)
        agent: Injected SQLAnalystAgent instance

    Returns:
        StreamingResponse of NDJSON lines
    """
    request_id = getattr(request.state, "request_id", "")
    messages = [message.model_dump() for message in body.messages]
    try:
        run = agent.run_conversation(messages, model=body.model)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    logger.info("chat_started", request_id=request_id, run_id=run.run_id, model=body.model)

    return StreamingResponse(
        stream_run(run, request_id),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"X-Run-ID": run.run_id},
    )
