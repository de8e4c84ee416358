"""SemanticPager: evict by semantic relevance instead of age.

Every live message with enough text is embedded into an HNSW index. Under
token pressure the recent conversation is embedded as a query, its nearest
neighbours are written out as one page, and a fixed share of the oldest live
messages is dropped. The id -> message map is snapshotted on shutdown and the
index is rebuilt from it on startup.
"""

from __future__ import annotations

import logging
import math

from ..types import (
    BufferLike,
    EmbedFn,
    IndexCapacityError,
    IndexConfigSnapshot,
    IndexSnapshot,
    Message,
    Page,
    PageRef,
    SearchHit,
    SemanticConfig,
)
from .buffer import summarize_messages
from .identity import extract_text, message_id, page_id, semantic_page_id
from .vector_index import HNSWIndex

logger = logging.getLogger(__name__)

MIN_INDEX_TEXT = 5
QUERY_PREVIEW_CHARS = 60


class SemanticPager:
    """Context buffer front-end with an HNSW index over message embeddings."""

    def __init__(
        self,
        buffer: BufferLike,
        embedder: EmbedFn,
        config: SemanticConfig | None = None,
    ) -> None:
        if embedder is None or not callable(embedder):
            raise ValueError("SemanticPager requires an embedder callable")
        config = config or buffer.config.semantic
        if not isinstance(config.dimensions, int) or config.dimensions <= 0:
            raise ValueError("SemanticPager requires a positive embedding dimensionality")

        self.buffer = buffer
        self.config = config
        self._embed = embedder
        self.index = self._new_index()
        self.message_store: dict[str, Message] = {}
        self._embeddings: dict[str, list[float]] = {}
        self.load_index()

    def _new_index(self) -> HNSWIndex:
        return HNSWIndex(
            dimensions=self.config.dimensions,
            max_elements=self.config.max_elements,
            ef_construction=self.config.ef_construction,
            M=self.config.M,
            ef_search=self.config.ef_search,
        )

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_message(self, message: Message) -> None:
        self.buffer.add_message(message)
        self._index_message(message)

    def _index_message(self, message: Message) -> bool:
        text = extract_text(message)
        if len(text) < MIN_INDEX_TEXT:
            return False

        embedding = list(self._embed(text))
        if len(embedding) != self.dimensions:
            logger.warning(
                "Embedding dimension mismatch: expected %d, got %d",
                self.dimensions, len(embedding),
            )
            return False

        mid = message_id(message)
        if mid in self.message_store:
            logger.debug("Message %s already indexed", mid)
            return True
        try:
            self.index.add_point(embedding, mid)
        except IndexCapacityError as e:
            logger.warning("Not indexing %s: %s", mid, e)
            return False

        self.message_store[mid] = message
        if self.config.cache_embeddings:
            self._embeddings[mid] = embedding
        return True

    # ------------------------------------------------------------------
    # Retrieval & eviction
    # ------------------------------------------------------------------

    def search(self, text: str, k: int | None = None) -> list[SearchHit]:
        """Nearest indexed messages to ``text``, most similar first."""
        query = list(self._embed(text))
        if len(query) != self.dimensions:
            logger.warning(
                "Query embedding dimension mismatch: expected %d, got %d",
                self.dimensions, len(query),
            )
            return []
        return [
            SearchHit(message_id=mid, similarity=sim, message=self.message_store.get(mid))
            for mid, sim in self.index.search_knn(query, k or self.config.retrieval_k)
        ]

    def cleanup(self, target_tokens: int) -> PageRef | None:
        current_tokens = self.buffer.estimate_tokens()
        if current_tokens <= target_tokens:
            return None

        recent = self.buffer.messages[-self.config.recent_window:]
        query_text = " ".join(extract_text(m) for m in recent)
        hits = self.search(query_text, self.config.retrieval_k)
        retrieved = [hit.message for hit in hits if hit.message is not None]

        if not retrieved:
            logger.info("Semantic cleanup: no neighbours resolved, falling back to temporal eviction")
            return self.buffer.cleanup(target_tokens)

        label = self.buffer.new_label("semantic_cluster")
        page = Page(
            id=semantic_page_id(label),
            label=label,
            role="system",
            messages=retrieved,
            metadata={
                "retrieval": "semantic",
                "neighbor_count": len(hits),
                "query_preview": query_text[:QUERY_PREVIEW_CHARS],
            },
        )

        remove_count = math.floor(len(self.buffer.messages) * self.config.eviction_fraction)
        evicted = self.buffer.messages[:remove_count]
        unretrieved = [m for m in evicted if m not in retrieved]

        batch = [page]
        if unretrieved and self.config.persist_unretrieved:
            batch.append(self._companion_page(page, unretrieved))
        try:
            self.buffer.register_pages(batch)
        except OSError:
            logger.exception("Semantic cleanup: failed to persist %s, live buffer kept", page.id)
            return None

        del self.buffer.messages[:remove_count]
        ref = PageRef(
            summary=f"Semantic page: {label}\n" + summarize_messages(
                retrieved, max_lines=self.buffer.config.buffer.summary_lines,
            ),
            page_id=page.id,
        )
        self.buffer.page_refs.append(ref)
        logger.info(
            "Semantic cleanup: removed %d msgs, created page %s (%d neighbours)",
            remove_count, page.id, len(retrieved),
        )
        return ref

    def _companion_page(self, semantic_page: Page, messages: list[Message]) -> Page:
        """Page for evicted messages the semantic query did not surface."""
        label = f"{semantic_page.label}_evicted"
        return Page(
            id=page_id(label),
            label=label,
            role="system",
            messages=list(messages),
            metadata={
                "retrieval": "temporal",
                "companion_of": semantic_page.id,
                "count": len(messages),
            },
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> IndexSnapshot:
        return IndexSnapshot(
            messages=dict(self.message_store),
            config=IndexConfigSnapshot(
                dimensions=self.config.dimensions,
                max_elements=self.config.max_elements,
                ef_construction=self.config.ef_construction,
                M=self.config.M,
            ),
            embeddings=dict(self._embeddings) if self.config.cache_embeddings else {},
        )

    def save_index(self) -> None:
        path = self.buffer.page_store.save_snapshot(self.snapshot())
        logger.debug("Saved index snapshot (%d msgs) to %s", len(self.message_store), path)

    def load_index(self) -> int:
        """Restore the id -> message map and rebuild the graph. Returns entries indexed."""
        try:
            snapshot = self.buffer.page_store.load_snapshot()
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to load index snapshot, starting empty: %s", e)
            return 0
        if snapshot is None:
            return 0

        self.index = self._new_index()
        self.message_store = dict(snapshot.messages)
        self._embeddings = {}
        indexed = 0
        for mid, message in self.message_store.items():
            text = extract_text(message)
            if len(text) < MIN_INDEX_TEXT:
                continue
            embedding = snapshot.embeddings.get(mid)
            if embedding is None or len(embedding) != self.dimensions:
                embedding = list(self._embed(text))
            if len(embedding) != self.dimensions:
                logger.warning("Skipping %s on rebuild: embedding dimension mismatch", mid)
                continue
            try:
                self.index.add_point(embedding, mid)
            except IndexCapacityError as e:
                logger.warning("Index rebuild stopped at %d entries: %s", indexed, e)
                break
            if self.config.cache_embeddings:
                self._embeddings[mid] = list(embedding)
            indexed += 1

        logger.info("Loaded %d messages from index snapshot (%d indexed)", len(self.message_store), indexed)
        return indexed

    def shutdown(self) -> None:
        try:
            self.save_index()
        except OSError:
            logger.exception("Failed to save index snapshot")
        self.buffer.shutdown()
