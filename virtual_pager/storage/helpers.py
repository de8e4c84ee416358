"""Shared helpers for page and snapshot serialization."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..types import IndexConfigSnapshot, IndexSnapshot, Message, Page


def dt_to_str(dt: datetime) -> str:
    return dt.isoformat()


def str_to_dt(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def message_to_dict(message: Message) -> dict[str, Any]:
    data: dict[str, Any] = {
        "role": message.role,
        "content": message.content,
        "timestamp": dt_to_str(message.timestamp),
    }
    if message.metadata:
        data["metadata"] = message.metadata
    return data


def message_from_dict(data: dict[str, Any]) -> Message:
    ts = data.get("timestamp")
    kwargs: dict[str, Any] = {}
    if ts is not None:
        kwargs["timestamp"] = str_to_dt(ts) if isinstance(ts, str) else datetime.fromtimestamp(ts / 1000, timezone.utc)
    return Message(
        role=data.get("role", "unknown"),
        content=data.get("content", ""),
        metadata=data.get("metadata"),
        **kwargs,
    )


def page_to_dict(page: Page) -> dict[str, Any]:
    return {
        "id": page.id,
        "label": page.label,
        "role": page.role,
        "created_at": dt_to_str(page.created_at),
        "messages": [message_to_dict(m) for m in page.messages],
        "metadata": page.metadata,
    }


def page_from_dict(data: dict[str, Any]) -> Page:
    return Page(
        id=data["id"],
        label=data.get("label", ""),
        role=data.get("role", "system"),
        created_at=str_to_dt(data["created_at"]) if "created_at" in data else datetime.now(timezone.utc),
        messages=[message_from_dict(m) for m in data.get("messages", [])],
        metadata=data.get("metadata", {}),
    )


def snapshot_to_dict(snapshot: IndexSnapshot) -> dict[str, Any]:
    cfg = snapshot.config
    data: dict[str, Any] = {
        "saved_at": dt_to_str(snapshot.saved_at),
        "messages": {mid: message_to_dict(m) for mid, m in snapshot.messages.items()},
        "config": {
            "dimensions": cfg.dimensions,
            "max_elements": cfg.max_elements,
            "ef_construction": cfg.ef_construction,
            "M": cfg.M,
        } if cfg else None,
    }
    if snapshot.embeddings:
        data["embeddings"] = snapshot.embeddings
    return data


def snapshot_from_dict(data: dict[str, Any]) -> IndexSnapshot:
    cfg_raw = data.get("config")
    raw_messages = data.get("messages", {})
    # Older snapshots store messages as [[id, message], ...] pairs
    if isinstance(raw_messages, list):
        raw_messages = {mid: m for mid, m in raw_messages}
    snapshot = IndexSnapshot(
        messages={mid: message_from_dict(m) for mid, m in raw_messages.items()},
        config=IndexConfigSnapshot(
            dimensions=cfg_raw["dimensions"],
            max_elements=cfg_raw.get("max_elements", 10_000),
            ef_construction=cfg_raw.get("ef_construction", 200),
            M=cfg_raw.get("M", 16),
        ) if cfg_raw else None,
        embeddings={mid: list(vec) for mid, vec in data.get("embeddings", {}).items()},
    )
    if "saved_at" in data:
        snapshot.saved_at = str_to_dt(data["saved_at"])
    return snapshot
