"""
Entity Catalog
==============

Abstract interface for the semantic-entity catalog, plus tolerant accessors
for the few entity fields the tools read.
"""

from abc import ABC, abstractmethod
from typing import Any


class EntityNotFound(KeyError):
    """Raised when an entity name is not in the catalog."""


class EntityCatalog(ABC):
    """Source of entity definitions and verified example queries."""

    @abstractmethod
    def list_entities(self) -> list[dict]:
        """Return one summary (name, description, table) per entity."""
        pass

    @abstractmethod
    def load_entity(self, name: str) -> dict:
        """
        Load a full entity definition.

        Raises:
            EntityNotFound: No entity with this name
        """
        pass

    def verified_queries(self) -> list[dict]:
        """Question/SQL pairs used as few-shot grounding during planning."""
        return []

    def try_load(self, name: str) -> dict | None:
        try:
            return self.load_entity(name)
        except EntityNotFound:
            return None


def summarize_entity(entity: dict) -> dict:
    """Build the summary returned by ``list_entities``."""
    return {
        "name": entity.get("name"),
        "description": entity.get("description", ""),
        "table": entity_table(entity),
    }


def entity_table(entity: dict) -> str:
    return str(entity.get("table") or entity.get("name"))


def entity_columns(entity: dict) -> list[dict[str, Any]]:
    """
    Normalize an entity's columns to ``{name, type, description}`` dicts.

    Columns may be listed as plain names, as dicts, or as a name-to-type map.
    """
    raw = entity.get("columns") or entity.get("properties") or []
    columns = []
    if isinstance(raw, dict):
        for name, spec in raw.items():
            if isinstance(spec, dict):
                columns.append({
                    "name": name,
                    "type": spec.get("type", "TEXT"),
                    "description": spec.get("description", ""),
                })
            else:
                columns.append({"name": name, "type": str(spec or "TEXT"), "description": ""})
        return columns

    for item in raw:
        if isinstance(item, str):
            columns.append({"name": item, "type": "TEXT", "description": ""})
        elif isinstance(item, dict) and item.get("name"):
            columns.append({
                "name": item["name"],
                "type": item.get("type", "TEXT"),
                "description": item.get("description", ""),
            })
    return columns


def entity_joins(entity: dict) -> list[dict]:
    """Joins declared by an entity as ``{entity, on}`` dicts."""
    joins = []
    for item in entity.get("joins") or entity.get("relationships") or []:
        if isinstance(item, dict) and (item.get("entity") or item.get("to")):
            joins.append({
                "entity": item.get("entity") or item.get("to"),
                "on": item.get("on", ""),
            })
    return joins
