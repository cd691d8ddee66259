"""
Syntax Verifier
===============

Validates SQL syntax using SQLite's parser.
"""

import sqlite3
from contextlib import closing

from sql_analyst.models import VerificationResult, VerificationStatus
from sql_analyst.verifiers.base import Verifier


class SyntaxVerifier(Verifier):
    """
    Validates SQL syntax using SQLite's parser with schema tables.

    Only meaningful for the SQLite dialect; other dialects are skipped
    rather than rejected for syntax SQLite does not know.
    """

    @property
    def name(self) -> str:
        return "SyntaxVerifier"

    def _create_schema_tables(
        self, conn: sqlite3.Connection, schema: dict
    ) -> None:
        """Create empty tables matching the schema for syntax validation."""
        cursor = conn.cursor()
        for table_name, table_info in schema.items():
            columns = []
            for col_name in table_info["columns"]:
                col_type = table_info.get("types", {}).get(col_name, "TEXT")
                columns.append(f'"{col_name}" {col_type}')
            if not columns:
                continue
            create_sql = f'CREATE TABLE "{table_name}" ({", ".join(columns)})'
            cursor.execute(create_sql)
        conn.commit()

    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Verify SQL syntax is valid.

        Args:
            sql: SQL query to validate
            context: ``schema`` with table definitions and the target ``dialect``

        Returns:
            VerificationResult with PASSED, FAILED or SKIPPED status
        """
        dialect = context.get("dialect", "SQLite")
        schema = context.get("schema") or {}
        if dialect != "SQLite" or not schema:
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.SKIPPED,
                message=f"Syntax check skipped for dialect {dialect}" if schema
                else "No entity schema supplied",
            )

        try:
            with closing(sqlite3.connect(":memory:")) as conn:
                self._create_schema_tables(conn, schema)
                # Use EXPLAIN to validate syntax
                conn.execute(f"EXPLAIN {sql}")
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.PASSED,
                message="SQL syntax is valid",
            )
        except sqlite3.Error as e:
            return VerificationResult(
                verifier_name=self.name,
                status=VerificationStatus.FAILED,
                message=f"SQL syntax error: {e!s}",
                details={"error_type": type(e).__name__, "error_message": str(e)},
            )
