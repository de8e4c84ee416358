"""All dataclasses, Protocols, and type aliases for virtual-pager."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence, runtime_checkable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Message:
    role: str  # "user", "assistant", "system", "tool"
    content: str | list[dict] = ""  # plain text or typed blocks ({"type": "text", "text": ...})
    timestamp: datetime = field(default_factory=_utcnow)
    metadata: dict | None = None

    def __post_init__(self) -> None:
        # Naive timestamps are UTC
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Fragments & Pages
# ---------------------------------------------------------------------------

@dataclass
class FragmentMetadata:
    """Descriptive metadata for a fragment. Counts and roles come from the slice."""
    preview: str = ""
    count: int = 0
    first_role: str = "unknown"
    last_role: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "preview": self.preview,
            "count": self.count,
            "first_role": self.first_role,
            "last_role": self.last_role,
        }


@dataclass
class Fragment:
    """A transient, contiguous slice of evicted messages."""
    messages: list[Message] = field(default_factory=list)
    preview: str = ""

    @property
    def metadata(self) -> FragmentMetadata:
        return FragmentMetadata(
            preview=self.preview,
            count=len(self.messages),
            first_role=self.messages[0].role if self.messages else "unknown",
            last_role=self.messages[-1].role if self.messages else "unknown",
        )


@dataclass
class Page:
    id: str
    label: str
    role: str = "system"
    created_at: datetime = field(default_factory=_utcnow)
    messages: list[Message] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PageRef:
    """What a page builder hands back: a summary to stand in for the evicted run."""
    summary: str
    page_id: str


# ---------------------------------------------------------------------------
# Semantic index
# ---------------------------------------------------------------------------

@dataclass
class IndexConfigSnapshot:
    dimensions: int
    max_elements: int = 10_000
    ef_construction: int = 200
    M: int = 16


@dataclass
class IndexSnapshot:
    """Serializable state of a SemanticPager. The similarity graph is never stored."""
    messages: dict[str, Message] = field(default_factory=dict)
    config: IndexConfigSnapshot | None = None
    embeddings: dict[str, list[float]] = field(default_factory=dict)
    saved_at: datetime = field(default_factory=_utcnow)


@dataclass
class SearchHit:
    message_id: str
    similarity: float
    message: Message | None = None


EmbedFn = Callable[[str], Sequence[float]]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class PagerError(Exception):
    """Base class for virtual-pager errors."""


class ConfigError(PagerError):
    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class IndexCapacityError(PagerError):
    """Raised by the vector index when max_elements would be exceeded."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class StorageConfig:
    pages_dir: str = ".virtualpager/pages"
    index_filename: str = "hnsw-index.json"


@dataclass
class BufferConfig:
    min_live_messages: int = 2   # newest messages temporal eviction never touches
    summary_lines: int = 5       # lines in the default extractive page summary


@dataclass
class FragmenterConfig:
    sample_rate: float = 0.2
    age_weight_exponent: float = 1.5
    min_fragment_size: int = 1
    max_fragment_size: int = 20


@dataclass
class SemanticConfig:
    dimensions: int = 384
    max_elements: int = 10_000
    ef_construction: int = 200
    M: int = 16
    ef_search: int = 64
    retrieval_k: int = 10
    recent_window: int = 10          # live messages used to build the query
    eviction_fraction: float = 0.3   # share of the live buffer removed per semantic cleanup
    cache_embeddings: bool = True    # store vectors in the snapshot to skip re-embedding
    persist_unretrieved: bool = True  # companion page for evicted messages the query missed
    embedding_model: str = "all-MiniLM-L6-v2"


@dataclass
class PagerConfig:
    version: str = "0.1"
    storage_root: str = ".virtualpager"
    token_budget: int = 120_000
    token_counter: str = "estimate"
    strategy: str = "fragmentation"  # "fragmentation", "semantic" or "temporal"
    summary_marker: str = "\U0001f9e0"
    storage: StorageConfig = field(default_factory=StorageConfig)
    buffer: BufferConfig = field(default_factory=BufferConfig)
    fragmenter: FragmenterConfig = field(default_factory=FragmenterConfig)
    semantic: SemanticConfig = field(default_factory=SemanticConfig)


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------

PageBuilder = Callable[[list[Message], str, str], PageRef]


@runtime_checkable
class BufferLike(Protocol):
    """Narrow contract the paging engines consume from the context buffer."""
    messages: list[Message]
    pages: dict[str, Page]
    page_refs: list[PageRef]
    config: PagerConfig
    page_store: Any  # storage.page_store.PageStore

    def estimate_tokens(self) -> int: ...

    def add_message(self, message: Message) -> None: ...

    def cleanup(self, target_tokens: int, page_builder: PageBuilder | None = None) -> PageRef | None: ...

    def create_page_from_messages(self, messages: list[Message], label: str, role: str) -> PageRef: ...

    def register_page(self, page: Page) -> None: ...

    def register_pages(self, pages: list[Page]) -> None: ...

    def new_label(self, prefix: str) -> str: ...

    def shutdown(self) -> None: ...
