"""
Cost Estimation
===============

Cheap plausibility signal for a candidate query before execution.
"""

from abc import ABC, abstractmethod

from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

PLACEHOLDER_SCORE = 50


class CostEstimator(ABC):
    """Base class for cost estimators. ``estimate`` must never raise."""

    @abstractmethod
    def estimate(self, sql: str) -> dict:
        """
        Estimate the cost of ``sql``.

        Returns:
            Dict with ``score``, ``estimatedRows``, ``cost`` and ``notes``
        """
        pass


def placeholder_estimate(note: str) -> dict:
    return {
        "score": PLACEHOLDER_SCORE,
        "estimatedRows": None,
        "cost": "unknown",
        "notes": [note],
    }


class HeuristicCostEstimator(CostEstimator):
    """Fixed estimate for environments without planner access."""

    def estimate(self, sql: str) -> dict:
        return placeholder_estimate("Simple heuristic; no planner estimate available.")


class ExplainCostEstimator(CostEstimator):
    """Reads estimated rows and total cost from the database planner."""

    def __init__(self, executor: DatabaseExecutor) -> None:
        self.executor = executor

    def estimate(self, sql: str) -> dict:
        try:
            plan = self.executor.explain(sql)
        except Exception as e:
            # Planner failures degrade to the placeholder rather than aborting the run
            logger.warning("cost_estimate_failed", error=str(e)[:200])
            return placeholder_estimate(f"EXPLAIN failed: {e!s}")

        rows = plan.get("estimated_rows")
        total_cost = plan.get("total_cost")
        notes = [f"{self.executor.dialect} EXPLAIN estimate"]
        if rows is None:
            notes.append("Planner reported no row estimate")

        return {
            "score": _score(rows),
            "estimatedRows": int(rows) if isinstance(rows, (int, float)) else None,
            "cost": f"{total_cost:.2f}" if isinstance(total_cost, (int, float)) else "unknown",
            "notes": notes,
        }


def _score(estimated_rows) -> int:
    """0-100, lower is cheaper."""
    if not isinstance(estimated_rows, (int, float)):
        return PLACEHOLDER_SCORE
    if estimated_rows <= 1_000:
        return 10
    if estimated_rows <= 100_000:
        return 25
    if estimated_rows <= 10_000_000:
        return 60
    return 90


def create_cost_estimator(strategy: str, executor: DatabaseExecutor) -> CostEstimator:
    """Build the estimator named by ``strategy`` (``heuristic`` or ``explain``)."""
    if strategy == "explain":
        return ExplainCostEstimator(executor)
    return HeuristicCostEstimator()
