"""
Errors
======

Exception taxonomy for the SQL analyst.
"""


class SQLAnalystError(Exception):
    """Base class for all SQL analyst errors."""


class ToolInputError(SQLAnalystError):
    """Tool arguments were malformed, or the tool is not callable right now."""

    def __init__(self, tool_name: str, message: str, details: list | None = None) -> None:
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name
        self.details = details or []


class ExecutionError(SQLAnalystError):
    """The database rejected a query."""

    def __init__(self, message: str, sql: str = "", code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.sql = sql
        self.code = code


class RepairExhausted(SQLAnalystError):
    """The repair protocol ran out of attempts for a query."""

    def __init__(self, message: str, attempted_sql: str, repair_reason: str | None = None) -> None:
        super().__init__(message)
        self.attempted_sql = attempted_sql
        self.repair_reason = repair_reason


class BudgetExceeded(SQLAnalystError):
    """A run used its whole step budget without a terminal tool result."""

    def __init__(self, budget: int) -> None:
        super().__init__(f"Step budget of {budget} exhausted without a terminal tool result")
        self.budget = budget


class TransportError(SQLAnalystError):
    """The model or the database could not be reached."""
