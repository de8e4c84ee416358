"""Approximate nearest-neighbour index over message embeddings.

FAISS ``IndexHNSWFlat`` with inner product over L2-normalised vectors, so
scores are cosine similarities. Entries are append-only and keyed by string
ids kept in a positional side list.
"""

from __future__ import annotations

from typing import Sequence

import faiss
import numpy as np

from ..types import IndexCapacityError


def _as_unit_rows(vectors: np.ndarray) -> np.ndarray:
    v = np.ascontiguousarray(vectors, dtype="float32")
    if v.ndim == 1:
        v = v[None, :]
    faiss.normalize_L2(v)
    return v


class HNSWIndex:
    """Bounded cosine-similarity HNSW index keyed by message id."""

    def __init__(
        self,
        dimensions: int,
        max_elements: int = 10_000,
        ef_construction: int = 200,
        M: int = 16,
        ef_search: int = 64,
    ) -> None:
        self.dimensions = dimensions
        self.max_elements = max_elements
        self.ef_construction = ef_construction
        self.M = M
        self._index = faiss.IndexHNSWFlat(dimensions, M, faiss.METRIC_INNER_PRODUCT)
        self._index.hnsw.efConstruction = ef_construction
        self._index.hnsw.efSearch = ef_search
        self._ids: list[str] = []

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._ids

    def add_point(self, embedding: Sequence[float], item_id: str) -> None:
        if len(embedding) != self.dimensions:
            raise ValueError(
                f"embedding has {len(embedding)} dimensions, index expects {self.dimensions}"
            )
        if len(self._ids) >= self.max_elements:
            raise IndexCapacityError(f"index is full ({self.max_elements} elements)")
        self._index.add(_as_unit_rows(np.asarray(embedding)))
        self._ids.append(item_id)

    def search_knn(self, query: Sequence[float], k: int) -> list[tuple[str, float]]:
        """Return up to ``k`` ``(item_id, cosine_similarity)`` pairs, best first."""
        if not self._ids or k <= 0:
            return []
        k = min(k, len(self._ids))
        scores, positions = self._index.search(_as_unit_rows(np.asarray(query)), k)
        return [
            (self._ids[pos], float(score))
            for score, pos in zip(scores[0], positions[0])
            if pos >= 0
        ]
