"""
Planning Tools
==============

Entity discovery and inspection, plus the planning exits:
finalize-plan, finalize-no-data and clarify-intent.
"""

from typing import Any

from pydantic import BaseModel, Field

from sql_analyst.catalog.base import EntityNotFound, entity_columns, entity_joins, entity_table
from sql_analyst.catalog.search import CatalogSearcher
from sql_analyst.errors import ToolInputError
from sql_analyst.models import FinalizedPlan
from sql_analyst.tools.base import Tool, ToolContext


class SearchCatalogInput(BaseModel):
    query: str = Field(..., min_length=1, description="Keywords or question to match against entities")
    top_k: int = Field(default=5, ge=1, le=50)


class EntityNameInput(BaseModel):
    name: str = Field(..., min_length=1, description="Entity name as listed in PossibleEntities")


class BulkEntitiesInput(BaseModel):
    names: list[str] = Field(..., min_length=1, max_length=20)


class ScanPropertiesInput(BaseModel):
    name: str = Field(..., min_length=1)
    pattern: str | None = Field(default=None, description="Case-insensitive substring filter")


class CoverageInput(BaseModel):
    terms: list[str] = Field(..., min_length=1, description="Key terms from the user question")
    entities: list[str] = Field(..., min_length=1, description="Candidate entity names")


class ClarifyIntentInput(BaseModel):
    question: str = Field(..., min_length=1, description="Question to ask the user")
    options: list[str] = Field(default_factory=list)


class FinalizePlanInput(BaseModel):
    plan: Any = Field(..., description="Plan for the query: entities, filters, measures, grouping")


class FinalizeNoDataInput(BaseModel):
    reason: str = Field(..., min_length=1, description="Why no available data answers the question")


def _load(context: ToolContext, tool_name: str, name: str) -> dict:
    try:
        return context.catalog.load_entity(name)
    except EntityNotFound as e:
        raise ToolInputError(tool_name, f"unknown entity '{name}'") from e


def search_catalog(params: SearchCatalogInput, context: ToolContext) -> dict:
    searcher = context.searcher or CatalogSearcher(context.catalog)
    matches = searcher.search(params.query, top_k=params.top_k)
    return {"query": params.query, "matches": matches}


def read_entity(params: EntityNameInput, context: ToolContext) -> dict:
    return {"entity": _load(context, "read-entity", params.name)}


def load_entities_bulk(params: BulkEntitiesInput, context: ToolContext) -> dict:
    entities, missing = [], []
    for name in params.names:
        entity = context.catalog.try_load(name)
        if entity is None:
            missing.append(name)
        else:
            entities.append(entity)
    return {"entities": entities, "missing": missing}


def scan_entity_properties(params: ScanPropertiesInput, context: ToolContext) -> dict:
    entity = _load(context, "scan-entity-properties", params.name)
    columns = entity_columns(entity)
    if params.pattern:
        needle = params.pattern.lower()
        columns = [
            c for c in columns
            if needle in c["name"].lower() or needle in str(c["description"]).lower()
        ]
    return {
        "entity": params.name,
        "table": entity_table(entity),
        "columns": columns,
        "joins": entity_joins(entity),
    }


def assess_entity_coverage(params: CoverageInput, context: ToolContext) -> dict:
    # (label, searchable text) pairs; labels are entity or entity.column
    vocabulary: list[tuple[str, str]] = []
    missing_entities = []
    for name in params.entities:
        entity = context.catalog.try_load(name)
        if entity is None:
            missing_entities.append(name)
            continue
        vocabulary.append((name, f"{name} {entity.get('description', '')}".lower()))
        for column in entity_columns(entity):
            label = f"{name}.{column['name']}"
            vocabulary.append((label, f"{column['name']} {column['description']}".lower()))

    covered: dict[str, list[str]] = {}
    for term in params.terms:
        plain = term.lower()
        underscored = plain.replace(" ", "_")
        hits = {label for label, text in vocabulary if plain in text or underscored in text}
        if hits:
            covered[term] = sorted(hits)

    uncovered = [t for t in params.terms if t not in covered]
    return {
        "covered": covered,
        "uncovered": uncovered,
        "coverage": round(len(covered) / len(params.terms), 3),
        "missingEntities": missing_entities,
    }


def clarify_intent(params: ClarifyIntentInput, context: ToolContext) -> dict:
    return {"ok": True, "question": params.question, "options": params.options}


def finalize_plan(params: FinalizePlanInput, context: ToolContext) -> dict:
    plan = FinalizedPlan(payload=params.plan)
    return {"ok": True, "plan": plan.payload, "entities": plan.entity_names()}


def finalize_no_data(params: FinalizeNoDataInput, context: ToolContext) -> dict:
    return {"ok": True, "reason": params.reason}


PLANNING_TOOLS = [
    Tool(
        name="search-catalog",
        description="Search the semantic catalog for entities and columns matching keywords.",
        input_model=SearchCatalogInput,
        handler=search_catalog,
    ),
    Tool(
        name="read-entity",
        description="Read the full definition of one semantic entity.",
        input_model=EntityNameInput,
        handler=read_entity,
    ),
    Tool(
        name="load-entities-bulk",
        description="Load several entity definitions at once.",
        input_model=BulkEntitiesInput,
        handler=load_entities_bulk,
    ),
    Tool(
        name="scan-entity-properties",
        description="List an entity's columns and joins, optionally filtered by a substring.",
        input_model=ScanPropertiesInput,
        handler=scan_entity_properties,
    ),
    Tool(
        name="assess-entity-coverage",
        description="Check which question terms are covered by the given entities.",
        input_model=CoverageInput,
        handler=assess_entity_coverage,
    ),
    Tool(
        name="clarify-intent",
        description="Ask the user a clarifying question. Ends the run.",
        input_model=ClarifyIntentInput,
        handler=clarify_intent,
    ),
    Tool(
        name="finalize-plan",
        description="Commit the query plan and move on to SQL building.",
        input_model=FinalizePlanInput,
        handler=finalize_plan,
    ),
    Tool(
        name="finalize-no-data",
        description="Declare that no available data can answer the question. Ends the run.",
        input_model=FinalizeNoDataInput,
        handler=finalize_no_data,
    ),
]
