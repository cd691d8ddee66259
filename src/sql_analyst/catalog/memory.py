"""
In-Memory Entity Catalog
========================

Catalog backed by plain dicts, for tests and demos.
"""

import copy

from sql_analyst.catalog.base import EntityCatalog, EntityNotFound, summarize_entity


class InMemoryEntityCatalog(EntityCatalog):
    """Catalog built from a list of entity definitions."""

    def __init__(
        self,
        entities: list[dict] | None = None,
        verified_queries: list[dict] | None = None,
    ) -> None:
        self._entities = {e["name"]: e for e in entities or []}
        self._verified_queries = verified_queries or []

    def list_entities(self) -> list[dict]:
        return [summarize_entity(e) for e in self._entities.values()]

    def load_entity(self, name: str) -> dict:
        if name not in self._entities:
            raise EntityNotFound(name)
        return copy.deepcopy(self._entities[name])

    def verified_queries(self) -> list[dict]:
        return list(self._verified_queries)
