"""Fragmenters: strategies that split an evicted message run into fragments.

A fragmenter is a pure function of its inputs plus an injected random source.
The concatenation of its fragments always reproduces the input run.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from ..types import Fragment, FragmenterConfig, Message
from .identity import extract_text

PREVIEW_CHARS = 60
MAX_AGE_HOURS = 10.0
MAX_SPLIT_PROBABILITY = 0.95


def generate_preview(messages: list[Message]) -> str:
    """``role: <first 60 chars>`` with ``...`` when the text was cut."""
    if not messages:
        return "empty"
    first = messages[0]
    text = extract_text(first)
    preview = text[:PREVIEW_CHARS]
    ellipsis = "..." if len(text) > PREVIEW_CHARS else ""
    return f"{first.role}: {preview}{ellipsis}"


def create_fragment(messages: list[Message]) -> Fragment:
    return Fragment(messages=list(messages), preview=generate_preview(messages))


class Fragmenter(ABC):
    """Strategy interface for turning a message run into ordered fragments."""

    @abstractmethod
    def fragment(self, messages: list[Message], config: FragmenterConfig | None = None) -> list[Fragment]:
        """Split ``messages`` into contiguous, non-overlapping fragments."""
        raise NotImplementedError(f"{type(self).__name__}.fragment() is not implemented")


class AgeWeightedRandomFragmenter(Fragmenter):
    """Age-biased stochastic fragmentation.

    Each message raises the chance of closing the current fragment in
    proportion to its age (capped at ten hours), so old runs shatter into
    many small fragments while recent runs stay mostly intact.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def split_probability(self, message: Message, now: datetime, config: FragmenterConfig) -> float:
        ts = message.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        age_seconds = max((now - ts).total_seconds(), 0.0)
        age_factor = min(age_seconds / 3600, MAX_AGE_HOURS) ** config.age_weight_exponent
        return min(config.sample_rate * (1 + age_factor), MAX_SPLIT_PROBABILITY)

    def fragment(self, messages: list[Message], config: FragmenterConfig | None = None) -> list[Fragment]:
        config = config or FragmenterConfig()
        if not messages:
            return []

        now = self._clock()
        last = len(messages) - 1
        fragments: list[Fragment] = []
        current: list[Message] = []

        for i, msg in enumerate(messages):
            current.append(msg)
            p = self.split_probability(msg, now, config)
            should_split = (
                len(current) >= config.max_fragment_size
                or (len(current) >= config.min_fragment_size and self._rng.random() < p)
            )
            if should_split and i < last:
                fragments.append(create_fragment(current))
                current = []

        if current:
            fragments.append(create_fragment(current))
        return fragments
