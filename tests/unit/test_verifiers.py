"""
Unit Tests for Verifiers
========================

Tests for each verifier in the verification chain.
"""

from sql_analyst.models import VerificationStatus
from sql_analyst.verifiers.base import VerificationChain
from sql_analyst.verifiers.safety import SafetyVerifier
from sql_analyst.verifiers.schema import SchemaVerifier
from sql_analyst.verifiers.syntax import SyntaxVerifier


class TestSyntaxVerifier:
    """Tests for the SyntaxVerifier."""

    def test_valid_select(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that valid SELECT passes verification."""
        sql = "SELECT name, email FROM customers WHERE tier = 'premium'"
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED
        assert result.verifier_name == "SyntaxVerifier"

    def test_valid_join(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that valid JOIN passes verification."""
        sql = """
            SELECT c.name, o.amount
            FROM customers c
            JOIN orders o ON c.id = o.customer_id
        """
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_valid_aggregation(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that aggregation queries pass verification."""
        sql = "SELECT COUNT(*) FROM customers"
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_invalid_syntax_typo(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that typos are caught."""
        sql = "SELEC name FROM customers"  # Missing 'T'
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED
        assert "syntax error" in result.message.lower()

    def test_invalid_syntax_missing_from(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that missing FROM is caught."""
        sql = "SELECT name customers"
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED

    def test_invalid_syntax_unclosed_string(
        self, syntax_verifier: SyntaxVerifier, verification_context: dict
    ) -> None:
        """Test that unclosed strings are caught."""
        sql = "SELECT * FROM customers WHERE name = 'test"
        result = syntax_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED

    def test_other_dialect_skipped(
        self, syntax_verifier: SyntaxVerifier, sample_schema: dict
    ) -> None:
        """Test that non-SQLite dialects are not parsed with SQLite."""
        sql = "SELECT name FROM customers WHERE email ILIKE '%@example.com'"
        result = syntax_verifier.verify(sql, {"schema": sample_schema, "dialect": "PostgreSQL"})
        assert result.status == VerificationStatus.SKIPPED


class TestSchemaVerifier:
    """Tests for the SchemaVerifier."""

    def test_valid_table(
        self, schema_verifier: SchemaVerifier, verification_context: dict
    ) -> None:
        """Test that valid tables pass verification."""
        sql = "SELECT * FROM customers"
        result = schema_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_invalid_table(
        self, schema_verifier: SchemaVerifier, verification_context: dict
    ) -> None:
        """Test that unknown tables are caught."""
        sql = "SELECT * FROM nonexistent_table"
        result = schema_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED
        assert "Unknown table" in result.message

    def test_schema_qualified_table(
        self, schema_verifier: SchemaVerifier, verification_context: dict
    ) -> None:
        """Test that a schema prefix does not hide a known table."""
        sql = "SELECT * FROM public.customers"
        result = schema_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_cte_names_ignored(
        self, schema_verifier: SchemaVerifier, verification_context: dict
    ) -> None:
        """Test that names defined by WITH are not flagged."""
        sql = """
            WITH spend AS (SELECT customer_id, SUM(amount) AS total FROM orders GROUP BY customer_id)
            SELECT c.name, s.total FROM customers c JOIN spend s ON s.customer_id = c.id
        """
        result = schema_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_multiple_valid_tables(
        self, schema_verifier: SchemaVerifier, verification_context: dict
    ) -> None:
        """Test JOINs with multiple valid tables."""
        sql = """
            SELECT c.name, o.amount
            FROM customers c
            JOIN orders o ON c.id = o.customer_id
        """
        result = schema_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_no_schema_skipped(self, schema_verifier: SchemaVerifier) -> None:
        """Test that verification is skipped without planned entities."""
        result = schema_verifier.verify("SELECT * FROM anything", {})
        assert result.status == VerificationStatus.SKIPPED


class TestSafetyVerifier:
    """Tests for the SafetyVerifier."""

    def test_safe_select(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that SELECT passes safety check."""
        sql = "SELECT * FROM customers"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_safe_with(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that common table expressions pass."""
        sql = "WITH t AS (SELECT 1 AS x) SELECT x FROM t;"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.PASSED

    def test_dangerous_drop(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that DROP is caught."""
        sql = "DROP TABLE customers"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED
        assert "DDL" in result.message

    def test_dangerous_truncate(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that TRUNCATE is caught."""
        sql = "TRUNCATE TABLE customers"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED
        assert "TRUNCATE" in result.message

    def test_delete_always_rejected(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that DELETE is rejected with or without WHERE."""
        for sql in ("DELETE FROM customers", "DELETE FROM customers WHERE id = 1"):
            result = safety_verifier.verify(sql, verification_context)
            assert result.status == VerificationStatus.FAILED
            assert "DELETE" in result.message

    def test_update_rejected(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        sql = "UPDATE customers SET tier = 'premium'"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED

    def test_dangerous_sql_injection(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that SQL injection patterns are caught."""
        sql = "SELECT * FROM customers; -- DROP TABLE users"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED

    def test_stacked_statements(
        self, safety_verifier: SafetyVerifier, verification_context: dict
    ) -> None:
        """Test that two statements in one string are rejected."""
        sql = "SELECT 1; SELECT 2"
        result = safety_verifier.verify(sql, verification_context)
        assert result.status == VerificationStatus.FAILED
        assert "Multiple statements" in result.message


class TestVerificationChain:
    """Tests for the full verification chain."""

    def test_all_pass(
        self, verification_chain, verification_context: dict
    ) -> None:
        """Test that valid SQL passes all verifiers."""
        sql = "SELECT name, email FROM customers WHERE tier = 'premium'"
        passed, results = verification_chain.run(sql, verification_context)
        assert passed is True
        assert len(results) == 3  # All verifiers run
        assert all(r.status == VerificationStatus.PASSED for r in results)

    def test_fail_fast_on_safety(
        self, verification_chain, verification_context: dict
    ) -> None:
        """Test that chain stops at the safety check."""
        sql = "DELETE FROM customers"
        passed, results = verification_chain.run(sql, verification_context)
        assert passed is False
        assert len(results) == 1  # Stopped at first failure
        assert results[0].verifier_name == "SafetyVerifier"

    def test_fail_on_syntax(
        self, verification_chain, verification_context: dict
    ) -> None:
        """Test that syntax errors are caught after safety and schema pass."""
        sql = "SELECT name FROM customers WHERE"
        passed, results = verification_chain.run(sql, verification_context)
        assert passed is False
        assert [r.verifier_name for r in results] == [
            "SafetyVerifier", "SchemaVerifier", "SyntaxVerifier",
        ]
        assert results[-1].status == VerificationStatus.FAILED

    def test_report_shape(
        self, verification_chain, verification_context: dict
    ) -> None:
        """Test the validate-sql payload built from the chain results."""
        report = verification_chain.report("SELECT name FROM customers", verification_context)
        assert report["valid"] is True
        assert report["sql"] == "SELECT name FROM customers"
        assert [r["verifier"] for r in report["results"]] == [
            "SafetyVerifier", "SchemaVerifier", "SyntaxVerifier",
        ]
        assert report["results"][0]["status"] == "passed"

    def test_custom_verifiers(self, verification_context: dict) -> None:
        """Test that an explicit verifier list replaces the defaults."""
        chain = VerificationChain([SafetyVerifier()])
        passed, results = chain.run("SELECT anything FROM nowhere", verification_context)
        assert passed is True
        assert [r.verifier_name for r in results] == ["SafetyVerifier"]
