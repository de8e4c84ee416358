"""Shared fixtures for virtual-pager tests."""

from __future__ import annotations

import hashlib
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from virtual_pager.config import load_config
from virtual_pager.core.buffer import ContextBuffer
from virtual_pager.types import Message, PagerConfig

HASH_DIMS = 32

LEGAL_WORDS = {"court", "filing", "motion", "attorney", "legal", "case", "judge", "settlement"}
MEDICAL_WORDS = {"insulin", "medication", "doctor", "lab", "blood", "glucose", "endocrinologist"}


def hash_embed(text: str) -> list[float]:
    """Deterministic pseudo-random embedding: distinct texts are near-orthogonal."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [b / 127.5 - 1.0 for b in digest[:HASH_DIMS]]


def topic_embed(text: str) -> list[float]:
    """3-d embedding: legal word count, medical word count, constant bias."""
    words = [w.strip(".,?!$").lower() for w in text.split()]
    legal = sum(1 for w in words if w in LEGAL_WORDS)
    medical = sum(1 for w in words if w in MEDICAL_WORDS)
    return [float(legal), float(medical), 0.1]


class CountingEmbedder:
    """Wraps an embed function and records every text it was asked to embed."""

    def __init__(self, fn=hash_embed):
        self.fn = fn
        self.calls: list[str] = []

    def __call__(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.fn(text)


@pytest.fixture
def tmp_store_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def pager_config(tmp_store_dir) -> PagerConfig:
    return load_config(config_dict={
        "storage_root": str(tmp_store_dir),
        "token_budget": 200,
        "semantic": {"dimensions": HASH_DIMS, "retrieval_k": 5},
    })


@pytest.fixture
def buffer(pager_config) -> ContextBuffer:
    return ContextBuffer(config=pager_config)


@pytest.fixture
def ts() -> datetime:
    return datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def legal_messages(ts) -> list[Message]:
    return [
        Message(role="user", content="What's the deadline for the court filing in case 24-cv-1234?", timestamp=ts),
        Message(role="assistant", content="The filing deadline for case 24-cv-1234 is January 30th. The motion must be submitted to the court by 5pm.", timestamp=ts + timedelta(seconds=30)),
        Message(role="user", content="Has the attorney reviewed the settlement offer?", timestamp=ts + timedelta(minutes=2)),
        Message(role="assistant", content="Yes, the attorney reviewed the settlement offer and recommends we counter at $50,000.", timestamp=ts + timedelta(minutes=2, seconds=30)),
    ]


@pytest.fixture
def medical_messages(ts) -> list[Message]:
    base = ts + timedelta(minutes=10)
    return [
        Message(role="user", content="My blood glucose was 180 this morning. Should I adjust my insulin?", timestamp=base),
        Message(role="assistant", content="A reading of 180 is above target. Consider adjusting your insulin dosage. Check with your doctor about increasing by 1 unit.", timestamp=base + timedelta(seconds=30)),
        Message(role="user", content="The lab results from last week showed elevated glucose levels too.", timestamp=base + timedelta(minutes=2)),
        Message(role="assistant", content="Consistently elevated glucose warrants a medication review. Schedule an appointment with your endocrinologist.", timestamp=base + timedelta(minutes=2, seconds=30)),
    ]


@pytest.fixture
def mixed_messages(legal_messages, medical_messages) -> list[Message]:
    return legal_messages + medical_messages


def make_messages(count: int, start: datetime, step: timedelta = timedelta(seconds=30)) -> list[Message]:
    """Alternating user/assistant messages with distinct, indexable text."""
    return [
        Message(
            role="user" if i % 2 == 0 else "assistant",
            content=f"message number {i} about topic {i % 7}",
            timestamp=start + step * i,
        )
        for i in range(count)
    ]
