"""Token accounting for the live buffer.

The buffer only needs a ``str -> int`` counter; ``count_message_tokens``
applies it per message to the ``"<role>: <text>"`` rendering the pager
budgets against.
"""

from __future__ import annotations

import importlib
from typing import Callable, Iterable

from .core.identity import extract_text
from .types import Message

TokenCounter = Callable[[str], int]

CHARS_PER_TOKEN = 4
DEFAULT_TIKTOKEN_MODEL = "gpt-4"


def estimate_tokens(text: str) -> int:
    """Character heuristic, never below one token."""
    return max(1, len(text) // CHARS_PER_TOKEN)


def _tiktoken_counter(model: str) -> TokenCounter:
    try:
        import tiktoken
    except ImportError:
        raise ImportError(
            "token_counter 'tiktoken' needs tiktoken. "
            "Install with: pip install virtual-pager[tiktoken]"
        )
    try:
        enc = tiktoken.encoding_for_model(model)
    except KeyError:
        enc = tiktoken.get_encoding(model)
    return lambda text: len(enc.encode(text))


def _import_counter(target: str) -> TokenCounter:
    module_path, sep, attr = target.rpartition(":")
    if not sep or not module_path or not attr:
        raise ValueError(f"Invalid callable token counter {target!r}, expected 'module.path:func'")
    counter = getattr(importlib.import_module(module_path), attr)
    if not callable(counter):
        raise ValueError(f"Token counter {target!r} is not callable")
    return counter


def create_token_counter(mode: str = "estimate") -> TokenCounter:
    """Resolve the ``token_counter`` config value.

    ``estimate``, ``tiktoken`` (or ``tiktoken:<model or encoding>``), or
    ``callable:module.path:func``.
    """
    kind, _, arg = mode.partition(":")
    if kind == "estimate" and not arg:
        return estimate_tokens
    if kind == "tiktoken":
        return _tiktoken_counter(arg or DEFAULT_TIKTOKEN_MODEL)
    if kind == "callable":
        return _import_counter(arg)
    raise ValueError(f"Unknown token counter mode: {mode}")


def count_message_tokens(messages: Iterable[Message], counter: TokenCounter = estimate_tokens) -> int:
    """Sum of ``counter`` over each message rendered as ``"<role>: <text>"``."""
    return sum(counter(f"{m.role}: {extract_text(m)}") for m in messages)
