"""
Safety Verifier
===============

Ensures the query is a single read-only statement.
"""

import re

from sql_analyst.models import VerificationResult, VerificationStatus
from sql_analyst.verifiers.base import Verifier


class SafetyVerifier(Verifier):
    """Rejects writes, DDL and stacked statements."""

    DANGEROUS_PATTERNS = [
        (r"\b(?:DROP|ALTER|CREATE)\s+(?:TABLE|DATABASE|INDEX|VIEW|SCHEMA)", "DDL statement detected"),
        (r"\bTRUNCATE\s+", "TRUNCATE operation detected"),
        (r"\bDELETE\s+FROM\b", "DELETE operation detected"),
        (r"\bUPDATE\s+\w+\s+SET\b", "UPDATE operation detected"),
        (r"\bINSERT\s+INTO\b", "INSERT operation detected"),
        (r"\b(?:GRANT|REVOKE)\b", "Privilege change detected"),
        (r";\s*--", "SQL comment after statement (potential injection)"),
        (r"\bEXEC(?:UTE)?\s*\(", "Dynamic SQL execution detected"),
    ]

    @property
    def name(self) -> str:
        return "SafetyVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Verify SQL is a single SELECT (or WITH ... SELECT) statement.

        Args:
            sql: SQL query to validate
            context: Additional context (unused for this verifier)

        Returns:
            VerificationResult with PASSED or FAILED status
        """
        violations = []

        for pattern, description in self.DANGEROUS_PATTERNS:
            if re.search(pattern, sql, re.IGNORECASE):
                violations.append(description)

        statement = sql.strip().rstrip(";").strip()
        if ";" in statement:
            violations.append("Multiple statements detected")
        if not re.match(r"^\(?\s*(?:SELECT|WITH)\b", statement, re.IGNORECASE):
            violations.append("Query must start with SELECT or WITH")

        if violations:
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.FAILED,
                message=f"Safety check failed: {'; '.join(violations)}",
                details={"violations": violations},
            )

        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.PASSED,
            message="Query is a single read-only statement",
        )
