"""
YAML Entity Catalog
===================

Loads entity definitions from a directory of YAML files.
"""

from pathlib import Path

import yaml

from sql_analyst.catalog.base import EntityCatalog, EntityNotFound, summarize_entity
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

VERIFIED_QUERIES_FILE = "verified_queries.yaml"


class YamlEntityCatalog(EntityCatalog):
    """
    One ``<name>.yaml`` file per entity, plus an optional
    ``verified_queries.yaml`` holding a list of ``{question, sql}`` pairs.

    Files are parsed on every call so edits show up without a restart.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _entity_files(self) -> list[Path]:
        if not self.directory.is_dir():
            logger.warning("entities_dir_missing", directory=str(self.directory))
            return []
        return sorted(
            path for path in self.directory.glob("*.y*ml")
            if path.name != VERIFIED_QUERIES_FILE
        )

    def _read(self, path: Path) -> dict:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Entity file {path} does not contain a mapping")
        data.setdefault("name", path.stem)
        return data

    def list_entities(self) -> list[dict]:
        return [summarize_entity(self._read(path)) for path in self._entity_files()]

    def load_entity(self, name: str) -> dict:
        for suffix in (".yaml", ".yml"):
            path = self.directory / f"{name}{suffix}"
            if path.is_file():
                return self._read(path)
        # Fall back to the declared name, which may differ from the file stem
        for path in self._entity_files():
            entity = self._read(path)
            if entity.get("name") == name:
                return entity
        raise EntityNotFound(name)

    def verified_queries(self) -> list[dict]:
        path = self.directory / VERIFIED_QUERIES_FILE
        if not path.is_file():
            return []
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or []
        return [item for item in data if isinstance(item, dict)]
