"""Tests for token counting and the optional embedding loader."""

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from virtual_pager.core.embedding import load_embed_fn
from virtual_pager.token_counter import count_message_tokens, create_token_counter, estimate_tokens
from virtual_pager.types import Message


def test_estimate_tokens():
    assert estimate_tokens("") == 1
    assert estimate_tokens("x" * 40) == 10


def test_estimate_mode():
    assert create_token_counter("estimate") is estimate_tokens


def test_callable_mode():
    counter = create_token_counter("callable:virtual_pager.token_counter:estimate_tokens")
    assert counter is estimate_tokens


def test_bad_callable_spec():
    with pytest.raises(ValueError):
        create_token_counter("callable:nocolon")


def test_unknown_mode():
    with pytest.raises(ValueError):
        create_token_counter("words")


def test_count_message_tokens_includes_blocks():
    msgs = [
        Message(role="user", content="x" * 14),  # "user: " + 14 = 20 chars
        Message(role="tool", content=[{"type": "text", "text": "y" * 10}]),  # "tool: " + 10 = 16 chars
    ]
    assert count_message_tokens(msgs) == 5 + 4


def test_embedder_requires_sentence_transformers():
    with patch.dict(sys.modules, {"sentence_transformers": None}):
        with pytest.raises(ImportError, match="virtual-pager\\[embeddings\\]"):
            load_embed_fn()


def test_embedder_encodes_single_text():
    model = MagicMock()
    model.encode.return_value = np.array([[0.5, 0.25, 0.0]])
    module = MagicMock()
    module.SentenceTransformer.return_value = model

    with patch.dict(sys.modules, {"sentence_transformers": module}):
        embed = load_embed_fn("tiny-model")

    assert embed("hello there") == [0.5, 0.25, 0.0]
    module.SentenceTransformer.assert_called_once_with("tiny-model")
    assert model.encode.call_args[0][0] == ["hello there"]


def test_callable_must_be_callable():
    with pytest.raises(ValueError, match="not callable"):
        create_token_counter("callable:virtual_pager.token_counter:CHARS_PER_TOKEN")


def test_tiktoken_model_argument():
    enc = MagicMock()
    enc.encode.return_value = [1, 2, 3]
    module = MagicMock()
    module.encoding_for_model.return_value = enc

    with patch.dict(sys.modules, {"tiktoken": module}):
        counter = create_token_counter("tiktoken:gpt-4o")

    assert counter("anything") == 3
    module.encoding_for_model.assert_called_once_with("gpt-4o")


def test_tiktoken_missing():
    with patch.dict(sys.modules, {"tiktoken": None}):
        with pytest.raises(ImportError, match="virtual-pager\\[tiktoken\\]"):
            create_token_counter("tiktoken")
