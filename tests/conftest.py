"""
Pytest Fixtures
===============

Shared fixtures for SQL analyst tests.
"""

import sqlite3
from pathlib import Path

import numpy as np
import pytest

from sql_analyst.agent import SQLAnalystAgent
from sql_analyst.cache import ResultCache
from sql_analyst.catalog.memory import InMemoryEntityCatalog
from sql_analyst.config import Settings
from sql_analyst.cost import HeuristicCostEstimator
from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.database.sqlite import SQLiteExecutor
from sql_analyst.errors import ExecutionError
from sql_analyst.execution import ExecutionWithRepair
from sql_analyst.models import (
    Column,
    FinalizedPlan,
    Phase,
    QueryResult,
    RepairAttempt,
    Step,
    ToolCall,
    ToolResult,
    VerificationStatus,
)
from sql_analyst.repair import ColumnRepairEngine, RepairEngine
from sql_analyst.tools import ToolContext, build_default_registry
from sql_analyst.verifiers.base import VerificationChain
from sql_analyst.verifiers.safety import SafetyVerifier
from sql_analyst.verifiers.schema import SchemaVerifier
from sql_analyst.verifiers.syntax import SyntaxVerifier

SAMPLE_ENTITIES = [
    {
        "name": "customers",
        "table": "customers",
        "description": "People and companies that place orders",
        "columns": [
            {"name": "id", "type": "INTEGER", "description": "Primary key"},
            {"name": "name", "type": "TEXT", "description": "Customer display name"},
            {"name": "email", "type": "TEXT", "description": "Contact email address"},
            {"name": "tier", "type": "TEXT", "description": "Loyalty tier: standard or premium"},
        ],
    },
    {
        "name": "orders",
        "table": "orders",
        "description": "Purchases made by customers",
        "columns": [
            {"name": "id", "type": "INTEGER", "description": "Primary key"},
            {"name": "customer_id", "type": "INTEGER", "description": "Buyer"},
            {"name": "product_id", "type": "INTEGER", "description": "Purchased product"},
            {"name": "amount", "type": "REAL", "description": "Order total in USD"},
            {"name": "order_date", "type": "TEXT", "description": "Date the order was placed"},
        ],
        "joins": [
            {"entity": "customers", "on": "orders.customer_id = customers.id"},
            {"entity": "products", "on": "orders.product_id = products.id"},
        ],
    },
    {
        "name": "products",
        "table": "products",
        "description": "Items available for sale",
        "columns": {
            "id": "INTEGER",
            "title": {"type": "TEXT", "description": "Product name"},
            "price": {"type": "REAL", "description": "List price in USD"},
        },
    },
]

VERIFIED_QUERIES = [
    {"question": "How many premium customers are there?",
     "sql": "SELECT COUNT(*) FROM customers WHERE tier = 'premium'"},
]


class ScriptedExecutor(DatabaseExecutor):
    """
    Executor returning canned outcomes per exact SQL text.

    SQL without a canned outcome fails with a generic ExecutionError.
    """

    dialect = "SQLite"

    def __init__(self, outcomes: dict | None = None) -> None:
        self.outcomes = outcomes or {}
        self.executed: list[str] = []

    def execute(self, sql: str) -> QueryResult:
        self.executed.append(sql)
        outcome = self.outcomes.get(sql)
        if outcome is None:
            raise ExecutionError(f"no canned result for: {sql}", sql=sql)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def explain(self, sql: str) -> dict:
        return {"estimated_rows": 42, "total_cost": 12.5}


class ScriptedRepairEngine(RepairEngine):
    """Returns queued proposals in order, then declines."""

    def __init__(self, proposals: list[RepairAttempt | None] | None = None) -> None:
        self.proposals = list(proposals or [])
        self.calls: list[dict] = []

    def propose(self, failing_sql, plan, entity_loader, error):
        self.calls.append({"sql": failing_sql, "plan": plan, "error": error, "loader": entity_loader})
        if not self.proposals:
            return None
        return self.proposals.pop(0)


class WordEncoder:
    """
    Deterministic stand-in for a sentence embedding model.

    Each dimension flags whether a vocabulary word occurs in the text.
    """

    VOCABULARY = ("customer", "email", "order", "date", "product", "price", "tier")

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def encode(self, texts):
        self.calls.append(list(texts))
        return np.array([[float(word in text.lower()) for word in self.VOCABULARY] for text in texts])


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_result(rows: list[dict]) -> QueryResult:
    """Build a QueryResult whose columns come from the first row."""
    names = list(rows[0]) if rows else []
    return QueryResult(
        rows=rows,
        columns=[Column(name=name) for name in names],
        row_count=len(rows),
        execution_time_ms=1.5,
    )


def make_step(index: int, phase: Phase, *results: tuple) -> Step:
    """
    Build a Step from ``(tool_name, output)`` or ``(tool_name, output, is_error)`` tuples.
    """
    calls, tool_results = [], []
    for i, result in enumerate(results):
        tool_name, output = result[0], result[1]
        is_error = result[2] if len(result) > 2 else False
        call_id = f"s{index}_{i}"
        calls.append(ToolCall(id=call_id, name=tool_name, arguments={}))
        tool_results.append(
            ToolResult(tool_call_id=call_id, tool_name=tool_name, output=output, is_error=is_error)
        )
    return Step(index=index, phase=phase, tool_calls=tuple(calls), tool_results=tuple(tool_results))


@pytest.fixture
def sample_entities() -> list[dict]:
    return SAMPLE_ENTITIES


@pytest.fixture
def catalog() -> InMemoryEntityCatalog:
    """Catalog of customers, orders and products."""
    return InMemoryEntityCatalog(SAMPLE_ENTITIES, verified_queries=VERIFIED_QUERIES)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """SQLite database file seeded with a few customers, products and orders."""
    path = tmp_path / "analyst.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(
            """
            CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT, email TEXT, tier TEXT);
            CREATE TABLE products (id INTEGER PRIMARY KEY, title TEXT, price REAL);
            CREATE TABLE orders (
                id INTEGER PRIMARY KEY,
                customer_id INTEGER,
                product_id INTEGER,
                amount REAL,
                order_date TEXT
            );
            INSERT INTO customers VALUES
                (1, 'Ada', 'ada@example.com', 'premium'),
                (2, 'Grace', 'grace@example.com', 'standard'),
                (3, 'Linus', 'linus@example.com', 'premium');
            INSERT INTO products VALUES (1, 'Widget', 9.5), (2, 'Gadget', 20.0);
            INSERT INTO orders VALUES
                (1, 1, 1, 9.5, '2024-01-03'),
                (2, 1, 2, 20.0, '2024-02-11'),
                (3, 3, 2, 20.0, '2024-02-12');
            """
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def sqlite_executor(db_path: Path) -> SQLiteExecutor:
    return SQLiteExecutor(str(db_path))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResultCache:
    """Empty cache driven by a fake clock."""
    return ResultCache(ttl_seconds=300, capacity=100, clock=clock)


@pytest.fixture
def plan() -> FinalizedPlan:
    return FinalizedPlan(payload={"entities": ["customers", "orders"], "measures": ["count"]})


@pytest.fixture
def tool_context(catalog, sqlite_executor, cache) -> ToolContext:
    """Tool context over the seeded SQLite database."""
    return ToolContext(
        catalog=catalog,
        executor=sqlite_executor,
        execution=ExecutionWithRepair(
            executor=sqlite_executor,
            repair_engine=ColumnRepairEngine(),
            catalog=catalog,
            cache=cache,
        ),
        cost_estimator=HeuristicCostEstimator(),
        verification_chain=VerificationChain(),
    )


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def make_agent(catalog, sqlite_executor, cache):
    """Factory for agents over the seeded database with a given LLM."""

    def factory(llm, **kwargs) -> SQLAnalystAgent:
        options = {
            "llm": llm,
            "catalog": catalog,
            "executor": sqlite_executor,
            "cache": cache,
            "settings": Settings(),
        }
        options.update(kwargs)
        return SQLAnalystAgent(**options)

    return factory


@pytest.fixture
def sample_schema() -> dict:
    """Verifier schema for every sample entity."""
    return {
        "customers": {
            "columns": ["id", "name", "email", "tier"],
            "types": {"id": "INTEGER"},
        },
        "orders": {
            "columns": ["id", "customer_id", "product_id", "amount", "order_date"],
            "types": {"id": "INTEGER", "amount": "REAL"},
        },
    }


@pytest.fixture
def syntax_verifier() -> SyntaxVerifier:
    """Create a SyntaxVerifier instance."""
    return SyntaxVerifier()


@pytest.fixture
def schema_verifier() -> SchemaVerifier:
    """Create a SchemaVerifier instance."""
    return SchemaVerifier()


@pytest.fixture
def safety_verifier() -> SafetyVerifier:
    """Create a SafetyVerifier instance."""
    return SafetyVerifier()


@pytest.fixture
def verification_chain() -> VerificationChain:
    """Create a default verification chain."""
    return VerificationChain()


@pytest.fixture
def verification_context(sample_schema: dict) -> dict:
    """Create a standard verification context."""
    return {
        "schema": sample_schema,
        "dialect": "SQLite",
    }


def assert_verification_passed(result) -> None:
    """Helper assertion for verification results."""
    assert result.status == VerificationStatus.PASSED, f"Expected PASSED, got: {result.message}"


def assert_verification_failed(result) -> None:
    """Helper assertion for verification failures."""
    assert result.status == VerificationStatus.FAILED, f"Expected FAILED, got: {result.message}"
