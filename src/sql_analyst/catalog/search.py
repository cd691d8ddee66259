"""
Catalog Search
==============

Retrieval over entity definitions for the planning phase.

Two rankings are available: cosine similarity of sentence-transformers
embeddings, and keyword Jaccard similarity.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import numpy as np
from sentence_transformers import SentenceTransformer

from sql_analyst.catalog.base import EntityCatalog, entity_columns, entity_table
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"
SEARCH_MODES = ("keyword", "embedding")


@dataclass
class CatalogChunk:
    """A searchable piece of an entity definition."""

    chunk_id: str
    entity: str
    content: str
    chunk_type: str  # "entity" or "column"
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, score: float) -> dict:
        return {
            "entity": self.entity,
            "type": self.chunk_type,
            "content": self.content,
            "score": round(score, 4),
            **self.metadata,
        }


def _tokens(text: str) -> set[str]:
    return {t for t in re.findall(r"[a-z0-9]+", text.lower()) if len(t) > 1}


class CatalogSearcher:
    """
    Ranks entities and columns by similarity to a query.

    With an ``encoder`` (anything with a sentence-transformers style
    ``encode(texts)``) chunks are ranked by embedding cosine similarity, and
    chunk vectors are kept between searches. Without one, chunks are ranked
    by Jaccard similarity of their words; underscored identifiers are split
    so that ``order_date`` matches "order date".
    """

    def __init__(self, catalog: EntityCatalog, encoder: Any = None) -> None:
        self.catalog = catalog
        self.encoder = encoder
        self._vectors: dict[str, np.ndarray] = {}

    @property
    def mode(self) -> str:
        return "embedding" if self.encoder is not None else "keyword"

    def _chunks(self) -> list[CatalogChunk]:
        chunks = []
        for summary in self.catalog.list_entities():
            name = summary["name"]
            entity = self.catalog.load_entity(name)
            columns = entity_columns(entity)
            chunks.append(
                CatalogChunk(
                    chunk_id=f"{name}_entity",
                    entity=name,
                    content=(
                        f"Entity '{name}' (table {entity_table(entity)}): "
                        f"{entity.get('description', '')} "
                        f"columns: {', '.join(c['name'] for c in columns)}"
                    ),
                    chunk_type="entity",
                )
            )
            for column in columns:
                chunks.append(
                    CatalogChunk(
                        chunk_id=f"{name}_{column['name']}",
                        entity=name,
                        content=(
                            f"Column '{column['name']}' in '{name}', type {column['type']}. "
                            f"{column['description']}"
                        ),
                        chunk_type="column",
                        metadata={"column": column["name"]},
                    )
                )
        return chunks

    def search(self, query: str, top_k: int = 5) -> list[dict]:
        """
        Retrieve the best-matching chunks.

        Args:
            query: Natural language query or keywords
            top_k: Maximum number of chunks to return

        Returns:
            Chunk dicts with scores, best first; chunks scoring zero or less
            are dropped
        """
        if not query.strip():
            return []
        chunks = self._chunks()
        if not chunks:
            return []

        if self.encoder is not None:
            scores = self._embedding_scores(query, chunks)
        else:
            scores = self._keyword_scores(query, chunks)

        scored = [(score, chunk) for score, chunk in zip(scores, chunks) if score > 0]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [chunk.to_dict(score) for score, chunk in scored[:top_k]]

    @staticmethod
    def _keyword_scores(query: str, chunks: list[CatalogChunk]) -> list[float]:
        query_words = _tokens(query)
        scores = []
        for chunk in chunks:
            chunk_words = _tokens(chunk.content)
            union = len(query_words | chunk_words)
            scores.append(len(query_words & chunk_words) / union if union else 0.0)
        return scores

    def _embedding_scores(self, query: str, chunks: list[CatalogChunk]) -> list[float]:
        # Only chunk texts not seen before are encoded
        missing = [c.content for c in chunks if c.content not in self._vectors]
        if missing:
            logger.debug("catalog_embeddings_computed", chunks=len(missing))
            for text, vector in zip(missing, self.encoder.encode(missing)):
                self._vectors[text] = np.asarray(vector, dtype=float)

        query_vector = np.asarray(self.encoder.encode([query])[0], dtype=float)
        matrix = np.vstack([self._vectors[c.content] for c in chunks])
        return self._cosine_similarity(matrix, query_vector).tolist()

    @staticmethod
    def _cosine_similarity(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
        """Cosine similarity of each row of ``matrix`` with ``vector``; zero vectors score 0."""
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(vector)
        dots = matrix @ vector
        return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


@lru_cache
def load_encoder(model_name: str = DEFAULT_EMBEDDING_MODEL) -> SentenceTransformer:
    """Load a sentence-transformers model once per process."""
    logger.info("embedding_model_loading", model=model_name)
    return SentenceTransformer(model_name)


def create_catalog_searcher(
    catalog: EntityCatalog,
    mode: str = "keyword",
    model_name: str = DEFAULT_EMBEDDING_MODEL,
) -> CatalogSearcher:
    """
    Build a searcher for the configured mode.

    Args:
        catalog: Catalog to search
        mode: ``embedding`` or ``keyword``
        model_name: sentence-transformers model used in ``embedding`` mode

    Returns:
        CatalogSearcher
    """
    if mode == "embedding":
        return CatalogSearcher(catalog, encoder=load_encoder(model_name))
    if mode == "keyword":
        return CatalogSearcher(catalog)
    raise ValueError(f"Unknown search mode: {mode!r} (expected one of {', '.join(SEARCH_MODES)})")
