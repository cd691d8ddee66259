"""
Tool Catalog
============

Named operations the model may invoke, with declared input shapes, and the
registry that validates and dispatches calls.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ValidationError

from sql_analyst.catalog.base import EntityCatalog
from sql_analyst.catalog.search import CatalogSearcher
from sql_analyst.cost import CostEstimator
from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.errors import ExecutionError, ToolInputError
from sql_analyst.execution import ExecutionWithRepair
from sql_analyst.models import ToolCall, ToolResult
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.observability.metrics import TOOL_CALLS_TOTAL
from sql_analyst.verifiers.base import VerificationChain

logger = get_logger(__name__)


@dataclass
class ToolContext:
    """Collaborators available to tool handlers during a run."""

    catalog: EntityCatalog
    executor: DatabaseExecutor
    execution: ExecutionWithRepair
    cost_estimator: CostEstimator
    verification_chain: VerificationChain
    searcher: CatalogSearcher | None = None


@dataclass(frozen=True)
class Tool:
    """A capability exposed to the model."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any, ToolContext], Any]

    def spec(self) -> dict:
        """OpenAI-style function declaration for this tool."""
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def invoke(self, arguments: dict, context: ToolContext) -> Any:
        """
        Validate ``arguments`` and run the handler.

        Raises:
            ToolInputError: Arguments do not match the input model
        """
        try:
            params = self.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolInputError(
                self.name,
                "invalid arguments",
                details=e.errors(include_url=False, include_context=False),
            ) from e
        return self.handler(params, context)


class ToolRegistry:
    """Holds every known tool; dispatch enforces the active subset."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        return self._tools[name]

    def names(self) -> list[str]:
        return list(self._tools)

    def specs(self, names: Iterable[str]) -> list[dict]:
        """Function declarations for the named tools, in the given order."""
        return [self._tools[name].spec() for name in names]

    def dispatch(
        self,
        call: ToolCall,
        active_tools: Iterable[str],
        context: ToolContext,
    ) -> ToolResult:
        """
        Run one tool call.

        Calls to unknown or inactive tools, invalid arguments and query
        failures become error results that the model sees on its next turn.
        TransportError and unexpected exceptions propagate.

        Args:
            call: Tool call emitted by the model
            active_tools: Tool names enabled for the current phase
            context: Collaborators for the handler

        Returns:
            ToolResult (``is_error`` set when the call was rejected or failed)
        """
        try:
            if call.name not in self._tools:
                raise ToolInputError(call.name, "unknown tool")
            if call.name not in set(active_tools):
                raise ToolInputError(call.name, "tool is not available in the current phase")
            output = self._tools[call.name].invoke(call.arguments, context)
        except ToolInputError as e:
            logger.warning("tool_rejected", tool=call.name, error=str(e))
            TOOL_CALLS_TOTAL.labels(tool=call.name, status="rejected").inc()
            return ToolResult(
                tool_call_id=call.id,
                tool_name=call.name,
                output={"ok": False, "error": str(e), "errorType": "ToolInputError", "details": e.details},
                is_error=True,
            )
        except ExecutionError as e:
            logger.warning("tool_failed", tool=call.name, error=str(e))
            TOOL_CALLS_TOTAL.labels(tool=call.name, status="error").inc()
            return ToolResult(
                tool_call_id=call.id,
                tool_name=call.name,
                output={"ok": False, "error": str(e), "errorType": "ExecutionError"},
                is_error=True,
            )

        TOOL_CALLS_TOTAL.labels(tool=call.name, status="ok").inc()
        logger.debug("tool_completed", tool=call.name)
        return ToolResult(tool_call_id=call.id, tool_name=call.name, output=output)
