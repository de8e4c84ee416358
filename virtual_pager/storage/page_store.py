"""PageStore: one pretty-printed JSON file per page, plus the semantic index snapshot."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..types import IndexSnapshot, Page
from .helpers import page_from_dict, page_to_dict, snapshot_from_dict, snapshot_to_dict

logger = logging.getLogger(__name__)


class PageStore:
    """Store pages as ``<pages_dir>/<page_id>.json``. Last full write wins."""

    def __init__(self, root: str | Path, index_filename: str = "hnsw-index.json") -> None:
        self.root = Path(root)
        self.index_path = self.root / index_filename
        self._ensure_root()

    def _ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _page_path(self, page_id: str) -> Path:
        return self.root / f"{page_id}.json"

    def write_page(self, page: Page) -> Path:
        path = self._page_path(page.id)
        path.write_text(
            json.dumps(page_to_dict(page), indent=2, default=str, ensure_ascii=False),
            encoding="utf-8",
        )
        return path

    def delete_page(self, page_id: str) -> bool:
        path = self._page_path(page_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning("Could not remove page file %s", path)
            return False
        return True

    def read_page(self, page_id: str) -> Page | None:
        path = self._page_path(page_id)
        if not path.is_file():
            return None
        try:
            return page_from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Unreadable page file %s", path)
            return None

    def list_page_ids(self) -> list[str]:
        return sorted(
            p.stem for p in self.root.glob("*.json") if p.name != self.index_path.name
        )

    def load_pages(self) -> dict[str, Page]:
        """Read every persisted page back (skipping unreadable files)."""
        pages: dict[str, Page] = {}
        for pid in self.list_page_ids():
            page = self.read_page(pid)
            if page is not None:
                pages[page.id] = page
        return pages

    def save_snapshot(self, snapshot: IndexSnapshot) -> Path:
        self.index_path.write_text(
            json.dumps(snapshot_to_dict(snapshot), indent=2, default=str, ensure_ascii=False),
            encoding="utf-8",
        )
        return self.index_path

    def load_snapshot(self) -> IndexSnapshot | None:
        """Return the stored snapshot, or None when absent.

        Parse errors propagate; callers decide whether that means a cold start.
        """
        if not self.index_path.is_file():
            return None
        return snapshot_from_dict(json.loads(self.index_path.read_text(encoding="utf-8")))
