"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .types import (
    BufferConfig,
    ConfigError,
    FragmenterConfig,
    PagerConfig,
    SemanticConfig,
    StorageConfig,
)

CONFIG_FILENAMES = [
    "virtual-pager.yaml",
    "virtual-pager.yml",
    "virtual-pager.json",
    "virtualpager.yaml",
    "virtualpager.yml",
    "virtualpager.json",
]

STRATEGIES = ("fragmentation", "semantic", "temporal")

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _discover_config() -> Path | None:
    """Search CWD then parent dirs up to home for a config file."""
    cwd = Path.cwd()
    home = Path.home()
    search = cwd
    while True:
        for name in CONFIG_FILENAMES:
            candidate = search / name
            if candidate.is_file():
                return candidate
        if search == home or search == search.parent:
            break
        search = search.parent
    return None


def _resolve_env(value: Any) -> Any:
    """Replace ``${VAR}`` references in string values (unset vars become empty)."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


def _build_config(raw: dict[str, Any]) -> PagerConfig:
    """Build a PagerConfig from a raw dict."""
    raw = _resolve_env(raw)
    storage_root = raw.get("storage_root", ".virtualpager")

    storage_raw = raw.get("storage", {})
    storage_config = StorageConfig(
        pages_dir=storage_raw.get("pages_dir", storage_root + "/pages"),
        index_filename=storage_raw.get("index_filename", "hnsw-index.json"),
    )

    buffer_raw = raw.get("buffer", {})
    buffer_config = BufferConfig(
        min_live_messages=buffer_raw.get("min_live_messages", 2),
        summary_lines=buffer_raw.get("summary_lines", 5),
    )

    frag_raw = raw.get("fragmenter", {})
    fragmenter_config = FragmenterConfig(
        sample_rate=frag_raw.get("sample_rate", 0.2),
        age_weight_exponent=frag_raw.get("age_weight_exponent", 1.5),
        min_fragment_size=frag_raw.get("min_fragment_size", 1),
        max_fragment_size=frag_raw.get("max_fragment_size", 20),
    )

    sem_raw = raw.get("semantic", {})
    semantic_config = SemanticConfig(
        dimensions=sem_raw.get("dimensions", 384),
        max_elements=sem_raw.get("max_elements", 10_000),
        ef_construction=sem_raw.get("ef_construction", 200),
        M=sem_raw.get("M", 16),
        ef_search=sem_raw.get("ef_search", 64),
        retrieval_k=sem_raw.get("retrieval_k", 10),
        recent_window=sem_raw.get("recent_window", 10),
        eviction_fraction=sem_raw.get("eviction_fraction", 0.3),
        cache_embeddings=sem_raw.get("cache_embeddings", True),
        persist_unretrieved=sem_raw.get("persist_unretrieved", True),
        embedding_model=sem_raw.get("embedding_model", "all-MiniLM-L6-v2"),
    )

    return PagerConfig(
        version=str(raw.get("version", "0.1")),
        storage_root=storage_root,
        token_budget=raw.get("token_budget", 120_000),
        token_counter=raw.get("token_counter", "estimate"),
        strategy=raw.get("strategy", "fragmentation"),
        summary_marker=raw.get("summary_marker", "\U0001f9e0"),
        storage=storage_config,
        buffer=buffer_config,
        fragmenter=fragmenter_config,
        semantic=semantic_config,
    )


def validate_config(config: PagerConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    if config.strategy not in STRATEGIES:
        errors.append(f"strategy must be one of {', '.join(STRATEGIES)} (got '{config.strategy}')")

    if config.token_budget < 1:
        errors.append("token_budget must be >= 1")

    if config.buffer.min_live_messages < 0:
        errors.append("buffer.min_live_messages must be >= 0")

    frag = config.fragmenter
    if not 0.0 <= frag.sample_rate <= 1.0:
        errors.append(f"fragmenter.sample_rate ({frag.sample_rate}) must be within [0, 1]")
    if frag.min_fragment_size < 1:
        errors.append("fragmenter.min_fragment_size must be >= 1")
    if frag.max_fragment_size < frag.min_fragment_size:
        errors.append(
            f"fragmenter.max_fragment_size ({frag.max_fragment_size}) must be >= "
            f"min_fragment_size ({frag.min_fragment_size})"
        )

    sem = config.semantic
    if sem.dimensions < 1:
        errors.append("semantic.dimensions must be >= 1")
    if sem.retrieval_k < 1:
        errors.append("semantic.retrieval_k must be >= 1")
    if not 0.0 <= sem.eviction_fraction <= 1.0:
        errors.append(f"semantic.eviction_fraction ({sem.eviction_fraction}) must be within [0, 1]")

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
) -> PagerConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if config_dict is not None:
        return _build_config(config_dict)

    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_config()

    if path is None:
        # Return defaults
        return _build_config({})

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    try:
        if path.suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}", path=str(path))

    return _build_config(raw)
