"""
Execution Tools
===============

Cost estimation and execute-with-repair.
"""

from typing import Any

from pydantic import BaseModel, Field

from sql_analyst.models import FinalizedPlan
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.tools.base import Tool, ToolContext

logger = get_logger(__name__)


class EstimateCostInput(BaseModel):
    sql: str = Field(..., min_length=1)


class ExecuteWithRepairInput(BaseModel):
    sql: str = Field(..., min_length=1)
    plan: Any = Field(default=None, description="The finalized plan, passed through unchanged")
    query_tag: str | None = Field(default=None, description="Free-form label for logs")


def estimate_cost(params: EstimateCostInput, context: ToolContext) -> dict:
    return context.cost_estimator.estimate(params.sql)


def execute_with_repair(params: ExecuteWithRepairInput, context: ToolContext) -> dict:
    if params.query_tag:
        logger.info("execute_with_repair", query_tag=params.query_tag)
    outcome = context.execution.execute(params.sql, FinalizedPlan(payload=params.plan))
    return outcome.to_dict()


EXECUTION_TOOLS = [
    Tool(
        name="estimate-cost",
        description="Estimate how expensive a query is before running it.",
        input_model=EstimateCostInput,
        handler=estimate_cost,
    ),
    Tool(
        name="execute-with-repair",
        description=(
            "Execute read-only SQL with up to two automatic repairs for "
            "missing or ambiguous columns."
        ),
        input_model=ExecuteWithRepairInput,
        handler=execute_with_repair,
    ),
]
