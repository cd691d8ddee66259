"""
Base Database Executor
======================

Abstract interface for relational database backends.
"""

from abc import ABC, abstractmethod

from sql_analyst.models import QueryResult


class DatabaseExecutor(ABC):
    """
    Executes SQL against a relational database.

    Implementations acquire one connection per call and release it on every
    exit path, so a single executor is safe to share between conversations.
    """

    #: SQL dialect name surfaced to the model
    dialect: str = "SQL"

    @abstractmethod
    def execute(self, sql: str) -> QueryResult:
        """
        Execute a query and return its rows.

        Args:
            sql: SQL text to execute

        Returns:
            QueryResult with rows, columns, row count and timing

        Raises:
            ExecutionError: The database rejected the query
            TransportError: The database could not be reached
        """
        pass

    @abstractmethod
    def explain(self, sql: str) -> dict:
        """
        Return the planner's estimate for a query.

        Returns:
            Dict with ``estimated_rows`` and ``total_cost`` (either may be None)
        """
        pass

    def close(self) -> None:
        """Release any pooled resources."""
