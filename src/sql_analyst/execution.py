"""
Execution With Repair
=====================

Turns model-generated SQL into a result set with bounded self-healing.

    cache hit? -> return cached rows
    execute original
      failure -> repair #1 -> execute fix #1
        failure -> repair #2 -> execute fix #2 -> final outcome

At most two repair proposals and three database executions per call.
"""

from sql_analyst.cache import ResultCache
from sql_analyst.catalog.base import EntityCatalog
from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.errors import ExecutionError, RepairExhausted
from sql_analyst.models import ExecutionFailure, ExecutionSuccess, FinalizedPlan, QueryResult
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.observability.metrics import REPAIR_ATTEMPTS_TOTAL
from sql_analyst.repair import RepairEngine

logger = get_logger(__name__)

MAX_REPAIR_ROUNDS = 2


class ExecutionWithRepair:
    """
    Controller for execute -> repair -> re-execute.

    Successful results, repaired or not, are cached under the SQL the caller
    asked for, so re-issuing a query that needed repair is served from cache
    without repairing again.
    """

    def __init__(
        self,
        executor: DatabaseExecutor,
        repair_engine: RepairEngine,
        catalog: EntityCatalog,
        cache: ResultCache,
        max_repair_rounds: int = MAX_REPAIR_ROUNDS,
    ) -> None:
        """
        Initialize the controller.

        Args:
            executor: Database executor
            repair_engine: Strategy proposing corrected SQL
            catalog: Entity catalog handed to the repair engine
            cache: Shared result cache
            max_repair_rounds: Upper bound on repair proposals per call
        """
        self.executor = executor
        self.repair_engine = repair_engine
        self.catalog = catalog
        self.cache = cache
        self.max_repair_rounds = max_repair_rounds

    def execute(self, sql: str, plan: FinalizedPlan) -> ExecutionSuccess | ExecutionFailure:
        """
        Execute ``sql``, repairing it at most ``max_repair_rounds`` times.

        Args:
            sql: Query proposed by the model
            plan: Finalized plan of the run, passed through to the repair engine

        Returns:
            ExecutionSuccess, or ExecutionFailure for the reporting phase
        """
        cached = self.cache.get(sql)
        if cached is not None:
            logger.info("cache_hit", age_s=round(self.cache.age_of(cached), 1))
            return ExecutionSuccess(
                rows=cached.rows,
                columns=cached.columns,
                row_count=len(cached.rows),
                execution_time_ms=0.0,
                attempted_sql=sql,
                repaired=False,
                repair_reason=None,
                from_cache=True,
            )

        candidate = sql
        first_reason: str | None = None
        last_reason: str | None = None
        # attempt 0 runs the original; attempts 1..max run repaired SQL
        for attempt in range(self.max_repair_rounds + 1):
            try:
                result = self.executor.execute(candidate)
            except ExecutionError as error:
                logger.warning(
                    "execution_failed", attempt=attempt, error=str(error)[:200]
                )
                if attempt == self.max_repair_rounds:
                    return self._failure(error, candidate, repaired=True, reason=last_reason)

                proposal = self.repair_engine.propose(candidate, plan, self.catalog.load_entity, error)
                if proposal is None or not proposal.fixed_sql:
                    REPAIR_ATTEMPTS_TOTAL.labels(outcome="declined").inc()
                    if attempt == 0:
                        return self._failure(error, sql, repaired=False, reason=None)
                    # keep the first fix's SQL and reason
                    return self._failure(error, candidate, repaired=True, reason=first_reason)

                REPAIR_ATTEMPTS_TOTAL.labels(outcome="proposed").inc()
                logger.info("repair_proposed", attempt=attempt + 1, reason=proposal.reason)
                candidate = proposal.fixed_sql
                last_reason = proposal.reason or str(error)
                if first_reason is None:
                    first_reason = last_reason
                continue

            return self._success(sql, candidate, result, repaired=attempt > 0, reason=last_reason)

        raise AssertionError("unreachable: repair loop is bounded")

    def _success(
        self,
        original_sql: str,
        attempted_sql: str,
        result: QueryResult,
        repaired: bool,
        reason: str | None,
    ) -> ExecutionSuccess:
        self.cache.put(original_sql, result.rows, result.columns)
        logger.info(
            "execution_succeeded",
            rows=result.row_count,
            repaired=repaired,
            elapsed_ms=round(result.execution_time_ms, 2),
        )
        return ExecutionSuccess(
            rows=result.rows,
            columns=result.columns,
            row_count=result.row_count,
            execution_time_ms=result.execution_time_ms,
            attempted_sql=attempted_sql,
            repaired=repaired,
            repair_reason=reason if repaired else None,
            from_cache=False,
        )

    def _failure(
        self,
        error: ExecutionError,
        attempted_sql: str,
        repaired: bool,
        reason: str | None,
    ) -> ExecutionFailure:
        error_type = RepairExhausted.__name__ if repaired else ExecutionError.__name__
        logger.warning("execution_gave_up", error_type=error_type, repaired=repaired)
        return ExecutionFailure(
            error=str(error),
            error_type=error_type,
            attempted_sql=attempted_sql,
            repaired=repaired,
            repair_reason=reason,
        )
