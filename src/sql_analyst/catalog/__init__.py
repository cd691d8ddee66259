"""
Catalog Module
==============

Semantic-entity catalog loaders.
"""

from sql_analyst.catalog.base import (
    EntityCatalog,
    EntityNotFound,
    entity_columns,
    entity_joins,
    entity_table,
)
from sql_analyst.catalog.memory import InMemoryEntityCatalog
from sql_analyst.catalog.yaml_catalog import YamlEntityCatalog

__all__ = [
    "EntityCatalog",
    "EntityNotFound",
    "InMemoryEntityCatalog",
    "YamlEntityCatalog",
    "entity_columns",
    "entity_joins",
    "entity_table",
]
