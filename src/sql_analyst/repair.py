"""
Repair Engine
=============

Proposes corrections for queries the database rejected.

Repair is limited to column-reference errors (unknown or ambiguous columns),
where the fix can be derived from the entities named in the plan. Any other
failure is declined and surfaced to the reporting phase.
"""

import difflib
import re
from abc import ABC, abstractmethod
from typing import Callable

from sql_analyst.catalog.base import EntityNotFound, entity_columns, entity_table
from sql_analyst.errors import ExecutionError
from sql_analyst.models import FinalizedPlan, RepairAttempt
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

EntityLoader = Callable[[str], dict]

MISSING_COLUMN_PATTERNS = [
    re.compile(r'column "?(?P<ref>[\w.]+)"? does not exist', re.IGNORECASE),
    re.compile(r"no such column:\s*(?P<ref>[\w.]+)", re.IGNORECASE),
    re.compile(r"unknown column '?(?P<ref>[\w.]+)'?", re.IGNORECASE),
]

AMBIGUOUS_COLUMN_PATTERNS = [
    re.compile(r'column reference "(?P<ref>\w+)" is ambiguous', re.IGNORECASE),
    re.compile(r"ambiguous column name:\s*(?P<ref>\w+)", re.IGNORECASE),
]

TABLE_REF_PATTERN = re.compile(
    r"\b(?:FROM|JOIN)\s+(?P<table>[\w.]+)(?:\s+(?:AS\s+)?(?P<alias>\w+))?",
    re.IGNORECASE,
)

SQL_KEYWORDS = {
    "where", "join", "inner", "left", "right", "full", "outer", "cross", "on",
    "group", "order", "limit", "having", "union", "using", "natural", "offset",
}


class RepairEngine(ABC):
    """Base class for repair strategies."""

    @abstractmethod
    def propose(
        self,
        failing_sql: str,
        plan: FinalizedPlan,
        entity_loader: EntityLoader,
        error: ExecutionError,
    ) -> RepairAttempt | None:
        """
        Propose one corrected query.

        Args:
            failing_sql: The query the database rejected
            plan: Finalized plan of the current run
            entity_loader: Loads an entity definition by name
            error: The database error

        Returns:
            RepairAttempt with the fixed SQL, or None to decline
        """
        pass


class ColumnRepairEngine(RepairEngine):
    """Fixes misspelled and ambiguous column references using plan entities."""

    def __init__(self, similarity_cutoff: float = 0.6) -> None:
        self.similarity_cutoff = similarity_cutoff

    def propose(
        self,
        failing_sql: str,
        plan: FinalizedPlan,
        entity_loader: EntityLoader,
        error: ExecutionError,
    ) -> RepairAttempt | None:
        message = str(error)
        tables = self._plan_columns(plan, entity_loader)
        if not tables:
            logger.info("repair_declined", reason="plan names no loadable entities")
            return None

        for pattern in MISSING_COLUMN_PATTERNS:
            match = pattern.search(message)
            if match:
                return self._fix_missing(failing_sql, match.group("ref"), tables)

        for pattern in AMBIGUOUS_COLUMN_PATTERNS:
            match = pattern.search(message)
            if match:
                return self._fix_ambiguous(failing_sql, match.group("ref"), tables)

        logger.info("repair_declined", reason="unsupported error class", error=message[:200])
        return None

    def _plan_columns(self, plan: FinalizedPlan, entity_loader: EntityLoader) -> dict[str, list[str]]:
        """Map each planned entity's table to its column names."""
        tables: dict[str, list[str]] = {}
        for name in plan.entity_names():
            try:
                entity = entity_loader(name)
            except EntityNotFound:
                logger.debug("repair_entity_missing", entity=name)
                continue
            tables[entity_table(entity).lower()] = [c["name"] for c in entity_columns(entity)]
        return tables

    def _fix_missing(
        self, sql: str, ref: str, tables: dict[str, list[str]]
    ) -> RepairAttempt | None:
        qualifier, _, column = ref.rpartition(".")
        candidates = sorted({c for cols in tables.values() for c in cols})
        matches = difflib.get_close_matches(column, candidates, n=1, cutoff=self.similarity_cutoff)
        if not matches or matches[0] == column:
            return None

        replacement = matches[0]
        if qualifier:
            pattern = re.compile(rf"\b{re.escape(qualifier)}\.{re.escape(column)}\b")
            fixed = pattern.sub(f"{qualifier}.{replacement}", sql)
        else:
            pattern = re.compile(rf"(?<![\w.]){re.escape(column)}\b")
            fixed = pattern.sub(replacement, sql)

        if fixed == sql:
            return None
        return RepairAttempt(
            fixed_sql=fixed,
            reason=f"Replaced unknown column '{column}' with '{replacement}'",
        )

    def _fix_ambiguous(
        self, sql: str, column: str, tables: dict[str, list[str]]
    ) -> RepairAttempt | None:
        for match in TABLE_REF_PATTERN.finditer(sql):
            table = match.group("table")
            alias = match.group("alias")
            if alias and alias.lower() in SQL_KEYWORDS:
                alias = None
            bare_table = table.rpartition(".")[2].lower()
            if column in tables.get(bare_table, []) or column in tables.get(table.lower(), []):
                qualifier = alias or table
                pattern = re.compile(rf"(?<![\w.]){re.escape(column)}\b")
                fixed = pattern.sub(f"{qualifier}.{column}", sql)
                if fixed == sql:
                    return None
                return RepairAttempt(
                    fixed_sql=fixed,
                    reason=f"Qualified ambiguous column '{column}' with '{qualifier}'",
                )
        return None
