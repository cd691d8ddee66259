"""
Data Models
===========

Core data structures shared by the orchestration loop, the tools and the
execution-with-repair controller.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Phase(str, Enum):
    """Coarse stage of a run. Declaration order is the only allowed direction."""

    PLANNING = "planning"
    BUILDING = "building"
    EXECUTION = "execution"
    REPORTING = "reporting"

    @property
    def rank(self) -> int:
        return list(Phase).index(self)


class VerificationStatus(Enum):
    """Status of a verification check."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class VerificationResult:
    """Result of a single verification step."""

    verifier_name: str
    status: VerificationStatus
    message: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "verifier": self.verifier_name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
        }


class Termination(str, Enum):
    """Why a run stopped."""

    REPORT = "report"
    NO_DATA = "no_data"
    CLARIFICATION = "clarification"
    BUDGET_EXCEEDED = "budget_exceeded"


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Output of one tool invocation."""

    tool_call_id: str
    tool_name: str
    output: Any
    is_error: bool = False


@dataclass(frozen=True)
class Step:
    """One model turn: free text, tool calls and their results."""

    index: int
    phase: Phase
    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()

    def successful_results(self) -> tuple[ToolResult, ...]:
        return tuple(r for r in self.tool_results if not r.is_error)


@dataclass(frozen=True)
class ModelTurn:
    """Raw output of a single model turn, before any tool has run."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    model: str = ""


@dataclass(frozen=True)
class TurnConfig:
    """Phase-conditioned configuration for the next model turn."""

    phase: Phase
    system: str
    active_tools: tuple[str, ...]


@dataclass(frozen=True)
class FinalizedPlan:
    """
    Output of the planning phase.

    The payload is carried through building and execution untouched; nothing
    in the orchestration core depends on its shape.
    """

    payload: Any = None

    def entity_names(self) -> list[str]:
        """
        Entity names mentioned by the payload, when it lists any.

        Models often pass the plan as serialized JSON, so string payloads are
        decoded first; undecodable text yields no names.
        """
        payload = self.payload
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return []
        if not isinstance(payload, dict):
            return []
        entities = payload.get("entities") or []
        names = []
        for entity in entities:
            if isinstance(entity, str):
                names.append(entity)
            elif isinstance(entity, dict) and entity.get("name"):
                names.append(str(entity["name"]))
        return names


@dataclass(frozen=True)
class Column:
    """A result-set column."""

    name: str
    type: str = "TEXT"

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a database executor."""

    rows: list[dict]
    columns: list[Column]
    row_count: int
    execution_time_ms: float


@dataclass(frozen=True)
class CacheEntry:
    """A cached result set, keyed by the verbatim SQL that produced it."""

    rows: list[dict]
    columns: list[Column]
    cached_at: float


@dataclass(frozen=True)
class RepairAttempt:
    """A corrected query proposed by a repair engine."""

    fixed_sql: Optional[str]
    reason: Optional[str] = None


@dataclass(frozen=True)
class ExecutionSuccess:
    """Successful outcome of execute-with-repair."""

    rows: list[dict]
    columns: list[Column]
    row_count: int
    execution_time_ms: float
    attempted_sql: str
    repaired: bool = False
    repair_reason: Optional[str] = None
    from_cache: bool = False

    ok = True

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "rows": self.rows,
            "columns": [c.to_dict() for c in self.columns],
            "rowCount": self.row_count,
            "executionTime": self.execution_time_ms,
            "attemptedSql": self.attempted_sql,
            "repaired": self.repaired,
            "repairReason": self.repair_reason,
            "fromCache": self.from_cache,
        }


@dataclass(frozen=True)
class ExecutionFailure:
    """Failed outcome of execute-with-repair, handed to the reporting phase."""

    error: str
    error_type: str
    attempted_sql: str
    repaired: bool = False
    repair_reason: Optional[str] = None

    ok = False

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "error": self.error,
            "errorType": self.error_type,
            "attemptedSql": self.attempted_sql,
            "repaired": self.repaired,
            "repairReason": self.repair_reason,
        }


class FinalizeReport(BaseModel):
    """Payload of a successfully completed run."""

    sql: str = Field(..., min_length=1, description="Final SQL that produced the answer")
    narrative: str = Field(..., min_length=1, description="Answer narrated for the user")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Self-assessed confidence")
    preview: list[dict[str, Any]] = Field(default_factory=list, description="First rows")
