"""
Reporting Tools
===============

Result checks, formatting, explanation and finalize-report.
"""

import csv
import io
import json
from typing import Any, Literal

from pydantic import BaseModel, Field

from sql_analyst.models import FinalizeReport
from sql_analyst.tools.base import Tool, ToolContext


class SanityCheckInput(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)
    columns: list[Any] = Field(default_factory=list, description="Column names or {name, type} dicts")


class FormatResultsInput(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)
    columns: list[Any] = Field(default_factory=list)
    format: Literal["markdown", "csv"] = "markdown"
    limit: int = Field(default=20, ge=1, le=500)


class ExplainResultsInput(BaseModel):
    sql: str = Field(..., min_length=1)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    question: str | None = None


def _column_names(columns: list[Any], rows: list[dict]) -> list[str]:
    names = []
    for column in columns:
        if isinstance(column, dict) and column.get("name"):
            names.append(str(column["name"]))
        elif isinstance(column, str):
            names.append(column)
    if not names and rows:
        names = list(rows[0].keys())
    return names


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def sanity_check(params: SanityCheckInput, context: ToolContext) -> dict:
    rows = params.rows
    names = _column_names(params.columns, rows)
    warnings = []

    if not rows:
        warnings.append("Query returned no rows")
    else:
        for name in names:
            if all(row.get(name) is None for row in rows):
                warnings.append(f"Column '{name}' is NULL in every row")
        fingerprints = {json.dumps(row, sort_keys=True, default=str) for row in rows}
        duplicates = len(rows) - len(fingerprints)
        if duplicates:
            warnings.append(f"{duplicates} duplicate row(s); consider DISTINCT or GROUP BY")

    return {"ok": not warnings, "rowCount": len(rows), "warnings": warnings}


def format_results(params: FormatResultsInput, context: ToolContext) -> dict:
    rows = params.rows[: params.limit]
    names = _column_names(params.columns, params.rows)

    if params.format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(names)
        for row in rows:
            writer.writerow([_cell(row.get(name)) for name in names])
        content = buffer.getvalue()
    else:
        lines = [
            "| " + " | ".join(names) + " |",
            "| " + " | ".join("---" for _ in names) + " |",
        ]
        for row in rows:
            cells = [_cell(row.get(name)).replace("|", "\\|") for name in names]
            lines.append("| " + " | ".join(cells) + " |")
        content = "\n".join(lines)

    return {
        "format": params.format,
        "content": content,
        "truncated": len(params.rows) > params.limit,
    }


def explain_results(params: ExplainResultsInput, context: ToolContext) -> dict:
    rows = params.rows
    names = _column_names([], rows)

    if not rows:
        summary = "The query returned no rows."
    elif len(rows) == 1 and len(names) == 1:
        summary = f"The answer is {_cell(rows[0][names[0]])} ({names[0]})."
    else:
        summary = f"The query returned {len(rows)} row(s) with columns: {', '.join(names)}."

    if params.question:
        summary = f"For the question \"{params.question}\": {summary}"
    return {"summary": summary, "sql": params.sql, "rowCount": len(rows)}


def finalize_report(params: FinalizeReport, context: ToolContext) -> dict:
    return params.model_dump()


REPORTING_TOOLS = [
    Tool(
        name="sanity-check",
        description="Look for empty results, all-NULL columns and duplicate rows.",
        input_model=SanityCheckInput,
        handler=sanity_check,
    ),
    Tool(
        name="format-results",
        description="Render rows as a markdown table or CSV.",
        input_model=FormatResultsInput,
        handler=format_results,
    ),
    Tool(
        name="explain-results",
        description="Summarize what a result set says.",
        input_model=ExplainResultsInput,
        handler=explain_results,
    ),
    Tool(
        name="finalize-report",
        description="Deliver the final answer: SQL, narrative, confidence (0-1) and preview rows. Ends the run.",
        input_model=FinalizeReport,
        handler=finalize_report,
    ),
]
