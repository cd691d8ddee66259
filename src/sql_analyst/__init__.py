"""
SQL Analyst
===========

Phase-gated natural-language-to-SQL agent with execution-time repair.
"""

from sql_analyst.agent import ConversationRun, SQLAnalystAgent, sanitize_messages
from sql_analyst.cache import ResultCache, get_result_cache, init_result_cache
from sql_analyst.errors import (
    BudgetExceeded,
    ExecutionError,
    RepairExhausted,
    SQLAnalystError,
    ToolInputError,
    TransportError,
)
from sql_analyst.execution import ExecutionWithRepair
from sql_analyst.llm import LLMInterface, ScriptedLLM
from sql_analyst.models import (
    ExecutionFailure,
    ExecutionSuccess,
    FinalizedPlan,
    FinalizeReport,
    Phase,
    QueryResult,
    Step,
    Termination,
    ToolCall,
    ToolResult,
)
from sql_analyst.phases import PhaseStateMachine
from sql_analyst.repair import ColumnRepairEngine, RepairEngine

__version__ = "0.1.0"

__all__ = [
    # Agent
    "SQLAnalystAgent",
    "ConversationRun",
    "sanitize_messages",
    "PhaseStateMachine",
    # Execution
    "ExecutionWithRepair",
    "ResultCache",
    "get_result_cache",
    "init_result_cache",
    "RepairEngine",
    "ColumnRepairEngine",
    # Models
    "Phase",
    "Step",
    "Termination",
    "ToolCall",
    "ToolResult",
    "FinalizedPlan",
    "FinalizeReport",
    "QueryResult",
    "ExecutionSuccess",
    "ExecutionFailure",
    # Errors
    "SQLAnalystError",
    "ToolInputError",
    "ExecutionError",
    "RepairExhausted",
    "BudgetExceeded",
    "TransportError",
    # LLM
    "LLMInterface",
    "ScriptedLLM",
]
