"""Optional sentence-transformers embedder for the semantic pager."""

from __future__ import annotations

import logging

from ..types import EmbedFn

logger = logging.getLogger(__name__)


def load_embed_fn(model_name: str = "all-MiniLM-L6-v2") -> EmbedFn:
    """Load a single-text embedding function. Raises ImportError if not installed."""
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError:
        raise ImportError(
            "sentence-transformers not installed. "
            "Install with: pip install virtual-pager[embeddings]"
        )
    model = SentenceTransformer(model_name)
    logger.debug("Loaded embedding model %s", model_name)

    def embed(text: str) -> list[float]:
        return model.encode(
            [text[:2000]], convert_to_numpy=True, show_progress_bar=False,
        )[0].tolist()

    return embed
