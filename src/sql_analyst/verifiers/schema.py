"""
Schema Verifier
===============

Validates that referenced tables belong to the planned entities.
"""

import re

from sql_analyst.models import VerificationResult, VerificationStatus
from sql_analyst.verifiers.base import Verifier


class SchemaVerifier(Verifier):
    """Validates that every table in FROM/JOIN clauses is a planned entity table."""

    @property
    def name(self) -> str:
        return "SchemaVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Verify all referenced tables exist in the schema.

        Args:
            sql: SQL query to validate
            context: May contain a ``schema`` key mapping table names to columns

        Returns:
            VerificationResult with PASSED, FAILED or SKIPPED status
        """
        schema = context.get("schema") or {}
        if not schema:
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.SKIPPED,
                message="No entity schema supplied",
            )

        known_tables = {t.lower() for t in schema}
        known_tables |= {t.lower().rpartition(".")[2] for t in schema}

        # Names introduced by WITH clauses are not tables
        cte_names = {
            name.lower()
            for name in re.findall(r"(?:\bWITH|,)\s*(\w+)\s+AS\s*\(", sql, re.IGNORECASE)
        }

        errors = []
        table_pattern = r"\b(?:FROM|JOIN)\s+([\w.]+)"
        for table in re.findall(table_pattern, sql, re.IGNORECASE):
            table_lower = table.lower()
            if table_lower in cte_names:
                continue
            if table_lower not in known_tables and table_lower.rpartition(".")[2] not in known_tables:
                errors.append(f"Unknown table: '{table}'")

        if errors:
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.FAILED,
                message=f"Schema validation failed: {'; '.join(errors)}",
                details={"errors": errors, "available_tables": sorted(schema)},
            )

        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.PASSED,
            message="All referenced tables are planned entities",
        )
