"""Stable, content-derived identifiers and message text extraction.

Every generated id is a sha256 hex digest prefix of a deterministic input
string, tagged with a provenance prefix:

    frag_  12 hex chars, one per fragment page
    hnsw_  12 hex chars, one per semantic page
    page_  12 hex chars, default (temporal) pages
    msg_   16 hex chars, one per indexed message
"""

from __future__ import annotations

import hashlib

from ..types import Message


def _digest(value: str, width: int) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:width]


def extract_text(message: Message) -> str:
    """Plain text of a message. Block content keeps only text blocks, space-joined."""
    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            str(block.get("text", ""))
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def fragment_id(label: str, index: int) -> str:
    return f"frag_{_digest(f'{label}-{index}', 12)}"


def semantic_page_id(label: str) -> str:
    return f"hnsw_{_digest(label, 12)}"


def page_id(label: str) -> str:
    return f"page_{_digest(label, 12)}"


def message_id(message: Message) -> str:
    """Hash of role, the first 100 chars of text, and the creation timestamp."""
    text = extract_text(message)
    stamp = message.timestamp.isoformat()
    return f"msg_{_digest(f'{message.role}-{text[:100]}-{stamp}', 16)}"
