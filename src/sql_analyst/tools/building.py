"""
Building Tools
==============

Join-path discovery, SQL construction and validation, and finalize-build.
"""

from collections import deque
from typing import Any

from pydantic import BaseModel, Field

from sql_analyst.catalog.base import EntityCatalog, entity_columns, entity_joins, entity_table
from sql_analyst.errors import ToolInputError
from sql_analyst.models import FinalizedPlan
from sql_analyst.tools.base import Tool, ToolContext


class JoinPathInput(BaseModel):
    from_entity: str = Field(..., min_length=1)
    to_entity: str = Field(..., min_length=1)
    max_hops: int = Field(default=4, ge=1, le=10)


class BuildSQLInput(BaseModel):
    sql: str = Field(..., min_length=1, description="Draft SQL, optionally in a markdown code block")


class ValidateSQLInput(BaseModel):
    sql: str = Field(..., min_length=1)
    entities: list[str] = Field(default_factory=list, description="Entities the query should use")


class FinalizeBuildInput(BaseModel):
    sql: str = Field(..., min_length=1)
    plan: Any = Field(default=None, description="The finalized plan, passed through unchanged")


def extract_sql(text: str) -> str:
    """Extract SQL from model output, handling markdown code blocks."""
    sql = text.strip()
    if sql.startswith("```"):
        lines = sql.split("\n")
        # Remove first and last lines (code block markers)
        sql = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return sql.strip().rstrip(";").strip()


def _join_graph(catalog: EntityCatalog) -> dict[str, list[tuple[str, str]]]:
    """Undirected adjacency built from every entity's declared joins."""
    graph: dict[str, list[tuple[str, str]]] = {}
    for summary in catalog.list_entities():
        name = summary["name"]
        graph.setdefault(name, [])
        for join in entity_joins(catalog.load_entity(name)):
            target = join["entity"]
            graph[name].append((target, join["on"]))
            graph.setdefault(target, []).append((name, join["on"]))
    return graph


def join_path_finder(params: JoinPathInput, context: ToolContext) -> dict:
    graph = _join_graph(context.catalog)
    for name in (params.from_entity, params.to_entity):
        if name not in graph:
            raise ToolInputError("join-path-finder", f"unknown entity '{name}'")

    if params.from_entity == params.to_entity:
        return {"found": True, "path": []}

    # Breadth-first search yields the path with the fewest hops
    previous: dict[str, tuple[str, str]] = {}
    queue = deque([(params.from_entity, 0)])
    seen = {params.from_entity}
    while queue:
        node, depth = queue.popleft()
        if node == params.to_entity:
            break
        if depth >= params.max_hops:
            continue
        for neighbor, condition in graph[node]:
            if neighbor not in seen:
                seen.add(neighbor)
                previous[neighbor] = (node, condition)
                queue.append((neighbor, depth + 1))

    if params.to_entity not in previous:
        return {"found": False, "path": [], "reason": f"No join path within {params.max_hops} hops"}

    path = []
    node = params.to_entity
    while node != params.from_entity:
        parent, condition = previous[node]
        path.append({"from": parent, "to": node, "on": condition})
        node = parent
    path.reverse()
    return {"found": True, "path": path}


def build_sql(params: BuildSQLInput, context: ToolContext) -> dict:
    sql = extract_sql(params.sql)
    if not sql:
        raise ToolInputError("build-sql", "no SQL found in input")
    return {"sql": sql, "dialect": context.executor.dialect, "changed": sql != params.sql}


def _schema_for(catalog: EntityCatalog, names: list[str]) -> dict:
    """Verifier schema ({table: {columns, types}}) for the named entities."""
    schema = {}
    for name in names:
        entity = catalog.try_load(name)
        if entity is None:
            continue
        columns = entity_columns(entity)
        schema[entity_table(entity)] = {
            "columns": [c["name"] for c in columns],
            "types": {c["name"]: c["type"] for c in columns},
        }
    return schema


def validate_sql(params: ValidateSQLInput, context: ToolContext) -> dict:
    sql = extract_sql(params.sql)
    verification_context = {
        "schema": _schema_for(context.catalog, params.entities),
        "dialect": context.executor.dialect,
    }
    return context.verification_chain.report(sql, verification_context)


def finalize_build(params: FinalizeBuildInput, context: ToolContext) -> dict:
    plan = FinalizedPlan(payload=params.plan)
    return {"ok": True, "sql": extract_sql(params.sql), "plan": plan.payload}


BUILDING_TOOLS = [
    Tool(
        name="join-path-finder",
        description="Find the shortest chain of joins between two entities.",
        input_model=JoinPathInput,
        handler=join_path_finder,
    ),
    Tool(
        name="build-sql",
        description="Normalize a draft SQL query (strips code fences and trailing semicolons).",
        input_model=BuildSQLInput,
        handler=build_sql,
    ),
    Tool(
        name="validate-sql",
        description="Check a query for safety, known tables and syntax before execution.",
        input_model=ValidateSQLInput,
        handler=validate_sql,
    ),
    Tool(
        name="finalize-build",
        description="Commit the final SQL and move on to execution.",
        input_model=FinalizeBuildInput,
        handler=finalize_build,
    ),
]
