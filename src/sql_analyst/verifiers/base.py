"""
Verifier Base
=============

The verifier interface and the ordered chain behind ``validate-sql``.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from sql_analyst.models import VerificationResult, VerificationStatus
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)


class Verifier(ABC):
    """A single static check of a candidate query."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name reported in results."""

    @abstractmethod
    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Check ``sql``.

        ``context`` carries ``schema`` ({table: {columns, types}} for the
        planned entities) and ``dialect`` (the executor's SQL dialect).
        """


def default_verifiers() -> list[Verifier]:
    """Safety, schema, then syntax."""
    from sql_analyst.verifiers.safety import SafetyVerifier
    from sql_analyst.verifiers.schema import SchemaVerifier
    from sql_analyst.verifiers.syntax import SyntaxVerifier

    return [SafetyVerifier(), SchemaVerifier(), SyntaxVerifier()]


class VerificationChain:
    """
    Verifiers applied in order to a built query.

    The chain stops at the first FAILED result; passed and skipped results
    let the next verifier run.
    """

    def __init__(self, verifiers: Iterable[Verifier] | None = None) -> None:
        self.verifiers = list(verifiers) if verifiers is not None else default_verifiers()

    def run(self, sql: str, context: dict) -> tuple[bool, list[VerificationResult]]:
        """Return whether every verifier passed, and the results collected so far."""
        results = []
        for verifier in self.verifiers:
            result = verifier.verify(sql, context)
            results.append(result)
            if result.status == VerificationStatus.FAILED:
                logger.info("verification_failed", verifier=result.verifier_name, reason=result.message, sql=sql)
                return False, results
        return True, results

    def report(self, sql: str, context: dict) -> dict:
        """``validate-sql`` output for ``sql``."""
        passed, results = self.run(sql, context)
        return {
            "valid": passed,
            "sql": sql,
            "results": [r.to_dict() for r in results],
        }
