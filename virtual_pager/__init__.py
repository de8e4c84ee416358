"""virtual-pager: paging evicted LLM conversation context out to addressable pages."""

from .config import load_config
from .core.buffer import ContextBuffer
from .core.fragmentation_pager import FragmentationPager
from .core.fragmenter import AgeWeightedRandomFragmenter, Fragmenter
from .core.semantic_pager import SemanticPager
from .engine import build_pager
from .types import (
    Fragment,
    FragmenterConfig,
    Message,
    Page,
    PageRef,
    PagerConfig,
    SemanticConfig,
)

__version__ = "0.1.0"

__all__ = [
    "AgeWeightedRandomFragmenter",
    "ContextBuffer",
    "Fragment",
    "Fragmenter",
    "FragmenterConfig",
    "FragmentationPager",
    "Message",
    "Page",
    "PageRef",
    "PagerConfig",
    "SemanticConfig",
    "SemanticPager",
    "build_pager",
    "load_config",
]
