"""
SQLite Executor
===============

Executes queries against a SQLite database file.
"""

import sqlite3
import time
from contextlib import closing

from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.errors import ExecutionError, TransportError
from sql_analyst.models import Column, QueryResult
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.observability.metrics import QUERY_DURATION, timed_operation

logger = get_logger(__name__)


class SQLiteExecutor(DatabaseExecutor):
    """SQLite backend; opens a fresh read-only connection for every call."""

    dialect = "SQLite"

    def __init__(self, path: str, timeout: float = 5.0) -> None:
        """
        Initialize the executor.

        Args:
            path: Path to the database file
            timeout: Seconds to wait on a locked database
        """
        self.path = path
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                f"file:{self.path}?mode=ro",
                uri=True,
                timeout=self.timeout,
                check_same_thread=False,
            )
        except sqlite3.OperationalError as e:
            raise TransportError(f"SQLite database unavailable: {e!s}") from e
        conn.row_factory = sqlite3.Row
        return conn

    @timed_operation(QUERY_DURATION)
    def execute(self, sql: str) -> QueryResult:
        """Execute ``sql`` and collect every row as a dict."""
        start = time.perf_counter()
        logger.debug("query_started", sql=sql[:100])

        with closing(self._connect()) as conn:
            try:
                cursor = conn.execute(sql)
                fetched = cursor.fetchall()
            except sqlite3.Error as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.warning("query_failed", error=str(e), elapsed_ms=round(elapsed, 2))
                raise ExecutionError(f"SQLite error: {e!s}", sql=sql) from e

            description = cursor.description or []

        columns = [Column(name=d[0], type="TEXT") for d in description]
        rows = [dict(row) for row in fetched]
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("query_completed", rows=len(rows), elapsed_ms=round(elapsed, 2))

        return QueryResult(
            rows=rows,
            columns=columns,
            row_count=len(rows),
            execution_time_ms=elapsed,
        )

    def explain(self, sql: str) -> dict:
        """
        SQLite has no row estimates; report the number of plan nodes instead.

        Raises:
            ExecutionError: The query cannot be planned
        """
        with closing(self._connect()) as conn:
            try:
                plan = conn.execute(f"EXPLAIN QUERY PLAN {sql}").fetchall()
            except sqlite3.Error as e:
                raise ExecutionError(f"SQLite error: {e!s}", sql=sql) from e

        return {
            "estimated_rows": None,
            "total_cost": None,
            "plan": [row["detail"] for row in plan],
        }
