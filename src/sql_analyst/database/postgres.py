"""
PostgreSQL Executor
===================

Executes queries against PostgreSQL through a shared connection pool.
"""

import threading
import time

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.errors import ExecutionError, TransportError
from sql_analyst.models import Column, QueryResult
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.observability.metrics import QUERY_DURATION, timed_operation

logger = get_logger(__name__)


class PostgresExecutor(DatabaseExecutor):
    """
    PostgreSQL backend.

    The pool is created lazily on first use. Each call borrows one
    connection and returns it to the pool in a ``finally`` block.
    """

    dialect = "PostgreSQL"

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10) -> None:
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._pool_lock = threading.Lock()

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = psycopg2.pool.ThreadedConnectionPool(
                        self.min_size, self.max_size, dsn=self.dsn
                    )
                except psycopg2.OperationalError as e:
                    raise TransportError(f"PostgreSQL unavailable: {e!s}") from e
                logger.info("pool_created", min_size=self.min_size, max_size=self.max_size)
            return self._pool

    def _run(self, sql: str):
        """Run ``sql`` in a read-only transaction; returns (rows, description)."""
        pool = self._get_pool()
        try:
            conn = pool.getconn()
        except (psycopg2.OperationalError, psycopg2.pool.PoolError) as e:
            raise TransportError(f"PostgreSQL unavailable: {e!s}") from e

        discard = False
        try:
            conn.set_session(readonly=True)
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql)
                rows = cursor.fetchall() if cursor.description else []
                description = cursor.description or []
            conn.rollback()
            return rows, description
        except psycopg2.extensions.QueryCanceledError as e:
            # statement_timeout or pg_cancel_backend
            conn.rollback()
            message = (e.pgerror or str(e)).strip()
            raise ExecutionError(f"Postgres Error: {message}", sql=sql, code=e.pgcode) from e
        except psycopg2.OperationalError as e:
            if not conn.closed:
                try:
                    conn.rollback()
                except psycopg2.Error as rollback_error:
                    logger.warning("rollback_failed", error=str(rollback_error))
                    discard = True
            raise TransportError(f"PostgreSQL connection lost: {e!s}") from e
        except psycopg2.Error as e:
            conn.rollback()
            message = (e.pgerror or str(e)).strip()
            raise ExecutionError(f"Postgres Error: {message}", sql=sql, code=e.pgcode) from e
        finally:
            pool.putconn(conn, close=discard or bool(conn.closed))

    @timed_operation(QUERY_DURATION)
    def execute(self, sql: str) -> QueryResult:
        """Execute ``sql`` and return its rows as dicts."""
        start = time.perf_counter()
        logger.debug("query_started", sql=sql[:100])
        try:
            rows, description = self._run(sql)
        except ExecutionError as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning("query_failed", error=e.message, elapsed_ms=round(elapsed, 2))
            raise

        elapsed = (time.perf_counter() - start) * 1000
        columns = [Column(name=d.name, type=str(d.type_code)) for d in description]
        logger.debug("query_completed", rows=len(rows), elapsed_ms=round(elapsed, 2))
        return QueryResult(
            rows=[dict(row) for row in rows],
            columns=columns,
            row_count=len(rows),
            execution_time_ms=elapsed,
        )

    def explain(self, sql: str) -> dict:
        """Read row and cost estimates from ``EXPLAIN (FORMAT JSON)``."""
        rows, _ = self._run(f"EXPLAIN (FORMAT JSON) {sql}")
        row = rows[0] if rows else {}
        plan_json = row.get("QUERY PLAN") or row.get("query_plan")
        if isinstance(plan_json, list):
            root = plan_json[0].get("Plan", {}) if plan_json else {}
        elif isinstance(plan_json, dict):
            root = plan_json.get("Plan", {})
        else:
            root = {}
        return {
            "estimated_rows": root.get("Plan Rows"),
            "total_cost": root.get("Total Cost"),
        }

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                logger.info("pool_closed")
                self._pool.closeall()
                self._pool = None
