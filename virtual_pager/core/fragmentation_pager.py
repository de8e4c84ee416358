"""FragmentationPager: page evicted runs out as N cross-referenced fragment pages."""

from __future__ import annotations

import logging

from ..types import BufferLike, FragmenterConfig, Message, Page, PageRef
from .fragmenter import Fragmenter
from .identity import fragment_id

logger = logging.getLogger(__name__)


def build_fragment_summary(pages: list[Page], parent_label: str, marker: str = "\U0001f9e0") -> str:
    """Header naming the parent, then one ``<marker> <preview> (<n> msgs)`` line per page."""
    links = [
        f"{marker} {page.metadata.get('preview', 'no preview')} ({page.metadata.get('count', 0)} msgs)"
        for page in pages
    ]
    return "\n".join([f"Fragmented: {parent_label}", *links])


class FragmentationPager:
    """Wraps a context buffer and replaces its single summary page with fragment pages."""

    def __init__(
        self,
        buffer: BufferLike,
        fragmenter: Fragmenter | None = None,
        fragmenter_config: FragmenterConfig | None = None,
    ) -> None:
        self.buffer = buffer
        self.fragmenter = fragmenter
        self.fragmenter_config = fragmenter_config or buffer.config.fragmenter

    def add_message(self, message: Message) -> None:
        self.buffer.add_message(message)

    def create_page_from_messages(self, messages: list[Message], label: str, role: str) -> PageRef:
        if self.fragmenter is None:
            return self.buffer.create_page_from_messages(messages, label, role)

        fragments = self.fragmenter.fragment(messages, self.fragmenter_config)
        total = len(fragments)
        pages: list[Page] = []
        for i, frag in enumerate(fragments):
            page = Page(
                id=fragment_id(label, i),
                label=f"{label} [frag {i + 1}/{total}]",
                role=role,
                messages=list(frag.messages),
                metadata={
                    **frag.metadata.to_dict(),
                    "fragment_index": i,
                    "total_fragments": total,
                    "parent": label,
                },
            )
            pages.append(page)
        self.buffer.register_pages(pages)

        logger.info("Fragmented %d msgs from %s into %d pages", len(messages), label, total)
        summary = build_fragment_summary(pages, label, self.buffer.config.summary_marker)
        return PageRef(summary=summary, page_id=pages[0].id if pages else "unknown")

    def cleanup(self, target_tokens: int) -> PageRef | None:
        return self.buffer.cleanup(target_tokens, page_builder=self.create_page_from_messages)

    def shutdown(self) -> None:
        self.buffer.shutdown()
