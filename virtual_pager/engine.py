"""Wire a context buffer to the paging engine selected in config."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Union

from .config import load_config
from .core.buffer import ContextBuffer
from .core.fragmentation_pager import FragmentationPager
from .core.fragmenter import AgeWeightedRandomFragmenter
from .core.semantic_pager import SemanticPager
from .token_counter import create_token_counter
from .types import EmbedFn, PagerConfig

logger = logging.getLogger(__name__)

Pager = Union[ContextBuffer, FragmentationPager, SemanticPager]


def build_pager(
    config_path: str | Path | None = None,
    config: PagerConfig | None = None,
    embedder: EmbedFn | None = None,
    rng: random.Random | None = None,
) -> Pager:
    """Build the buffer and wrap it in the configured strategy.

    ``temporal`` returns the bare buffer. ``semantic`` uses ``embedder`` or,
    when none is given, loads sentence-transformers.
    """
    config = config or load_config(config_path)
    buffer = ContextBuffer(config=config, token_counter=create_token_counter(config.token_counter))

    if config.strategy == "temporal":
        return buffer

    if config.strategy == "semantic":
        if embedder is None:
            from .core.embedding import load_embed_fn
            embedder = load_embed_fn(config.semantic.embedding_model)
        logger.debug("Using semantic paging (dimensions=%d)", config.semantic.dimensions)
        return SemanticPager(buffer, embedder, config.semantic)

    if config.strategy != "fragmentation":
        raise ValueError(f"Unknown paging strategy: {config.strategy}")

    return FragmentationPager(
        buffer,
        fragmenter=AgeWeightedRandomFragmenter(rng=rng),
        fragmenter_config=config.fragmenter,
    )
