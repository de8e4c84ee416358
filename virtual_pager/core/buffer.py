"""ContextBuffer: the live message sequence, its page directory, and temporal eviction.

The paging engines take a buffer handle and drive it through the narrow
``BufferLike`` contract; they never subclass it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from ..storage.page_store import PageStore
from ..token_counter import count_message_tokens, create_token_counter
from ..types import Message, Page, PageBuilder, PageRef, PagerConfig
from .identity import extract_text, page_id

logger = logging.getLogger(__name__)


def summarize_messages(messages: list[Message], max_lines: int = 5, width: int = 80) -> str:
    """Extractive summary: one ``role: text`` line per message, capped."""
    lines = []
    for msg in messages[:max_lines]:
        text = " ".join(extract_text(msg).split())
        if len(text) > width:
            text = text[:width] + "..."
        lines.append(f"{msg.role}: {text}")
    if len(messages) > max_lines:
        lines.append(f"... (+{len(messages) - max_lines} more)")
    return "\n".join(lines)


class ContextBuffer:
    """Owns the live messages, the page directory, and the page store."""

    def __init__(
        self,
        config: PagerConfig | None = None,
        token_counter: Callable[[str], int] | None = None,
        page_store: PageStore | None = None,
    ) -> None:
        self.config = config or PagerConfig()
        self._token_counter = token_counter or create_token_counter(self.config.token_counter)
        self.page_store = page_store or PageStore(
            self.config.storage.pages_dir, self.config.storage.index_filename,
        )
        self.messages: list[Message] = []
        self.pages: dict[str, Page] = {}
        self.page_refs: list[PageRef] = []
        self._labels: set[str] = set()

    def new_label(self, prefix: str) -> str:
        """Time-derived page label, suffixed when the same millisecond repeats."""
        base = f"{prefix}_{int(datetime.now(timezone.utc).timestamp() * 1000)}"
        label, n = base, 1
        while label in self._labels:
            label = f"{base}-{n}"
            n += 1
        self._labels.add(label)
        return label

    def estimate_tokens(self) -> int:
        return count_message_tokens(self.messages, self._token_counter)

    def add_message(self, message: Message) -> None:
        self.messages.append(message)

    def register_page(self, page: Page) -> None:
        """Persist a page and add it to the directory."""
        self.register_pages([page])

    def register_pages(self, pages: list[Page]) -> None:
        """Persist a batch of pages, then add them all to the directory.

        If any write fails, pages already written in this batch are removed
        from disk and the ``OSError`` propagates with the directory unchanged.
        """
        written: list[str] = []
        try:
            for page in pages:
                self.page_store.write_page(page)
                written.append(page.id)
        except OSError:
            for pid in written:
                self.page_store.delete_page(pid)
            raise
        for page in pages:
            self.pages[page.id] = page
            logger.debug("Registered page %s (%d msgs)", page.id, len(page.messages))

    def create_page_from_messages(self, messages: list[Message], label: str, role: str) -> PageRef:
        """Default page builder: one page with an extractive summary."""
        page = Page(
            id=page_id(label),
            label=label,
            role=role,
            messages=list(messages),
            metadata={"retrieval": "temporal", "count": len(messages)},
        )
        self.register_page(page)
        summary = f"Paged out: {label}\n" + summarize_messages(
            messages, max_lines=self.config.buffer.summary_lines,
        )
        return PageRef(summary=summary, page_id=page.id)

    def _eviction_count(self, target_tokens: int) -> int:
        """Oldest messages to drop so the estimate fits the target."""
        keep_min = max(0, self.config.buffer.min_live_messages)
        max_evictable = max(0, len(self.messages) - keep_min)
        remaining = self.estimate_tokens()
        count = 0
        while count < max_evictable and remaining > target_tokens:
            remaining -= count_message_tokens([self.messages[count]], self._token_counter)
            count += 1
        return count

    def cleanup(self, target_tokens: int, page_builder: PageBuilder | None = None) -> PageRef | None:
        """Temporal eviction: page out the oldest messages until within target.

        Returns the builder's PageRef, or None when nothing was evicted.
        """
        if self.estimate_tokens() <= target_tokens:
            return None

        count = self._eviction_count(target_tokens)
        if count == 0:
            logger.debug("Cleanup: nothing evictable (%d live msgs)", len(self.messages))
            return None

        evicted = self.messages[:count]
        label = self.new_label("evicted")
        builder = page_builder or self.create_page_from_messages
        try:
            ref = builder(evicted, label, "system")
        except OSError:
            logger.exception("Cleanup: failed to persist %s, live buffer kept", label)
            return None
        self.messages = self.messages[count:]
        self.page_refs.append(ref)
        logger.info("Cleanup: evicted %d msgs into %s", count, ref.page_id)
        return ref

    def shutdown(self) -> None:
        logger.info("Buffer shutdown: %d live msgs, %d pages", len(self.messages), len(self.pages))
