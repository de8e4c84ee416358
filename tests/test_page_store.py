"""Tests for PageStore and serialization helpers."""

from datetime import datetime, timezone

from virtual_pager.storage.helpers import (
    message_from_dict,
    message_to_dict,
    page_from_dict,
    page_to_dict,
    str_to_dt,
)
from virtual_pager.storage.page_store import PageStore
from virtual_pager.types import IndexConfigSnapshot, IndexSnapshot, Message, Page

TS = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def make_page(pid: str = "frag_000000000001") -> Page:
    return Page(
        id=pid,
        label="evicted_1 [frag 1/2]",
        role="system",
        created_at=TS,
        messages=[
            Message(role="user", content="What about the case?", timestamp=TS),
            Message(role="assistant", content=[{"type": "text", "text": "It is pending."}], timestamp=TS,
                    metadata={"model": "test"}),
        ],
        metadata={"preview": "user: What about the case?", "count": 2, "parent": "evicted_1"},
    )


def test_write_and_read_page(tmp_store_dir):
    store = PageStore(tmp_store_dir / "pages")
    page = make_page()
    path = store.write_page(page)
    assert path.name == "frag_000000000001.json"
    assert store.read_page(page.id) == page


def test_missing_page(tmp_store_dir):
    assert PageStore(tmp_store_dir).read_page("page_nope") is None


def test_unreadable_page_skipped(tmp_store_dir):
    store = PageStore(tmp_store_dir)
    store.write_page(make_page("page_good"))
    (tmp_store_dir / "page_bad.json").write_text("{oops")
    assert list(store.load_pages()) == ["page_good"]


def test_list_page_ids_excludes_snapshot(tmp_store_dir):
    store = PageStore(tmp_store_dir)
    store.write_page(make_page("frag_b"))
    store.write_page(make_page("frag_a"))
    store.save_snapshot(IndexSnapshot(config=IndexConfigSnapshot(dimensions=4)))
    assert store.list_page_ids() == ["frag_a", "frag_b"]


def test_snapshot_round_trip(tmp_store_dir):
    store = PageStore(tmp_store_dir)
    msg = Message(role="user", content="indexed text", timestamp=TS)
    snapshot = IndexSnapshot(
        messages={"msg_1": msg},
        config=IndexConfigSnapshot(dimensions=4, max_elements=50, ef_construction=100, M=8),
        embeddings={"msg_1": [0.1, 0.2, 0.3, 0.4]},
        saved_at=TS,
    )
    store.save_snapshot(snapshot)
    assert store.load_snapshot() == snapshot


def test_no_snapshot(tmp_store_dir):
    assert PageStore(tmp_store_dir).load_snapshot() is None


def test_message_dict_omits_empty_metadata():
    data = message_to_dict(Message(role="user", content="hi", timestamp=TS))
    assert data == {"role": "user", "content": "hi", "timestamp": "2026-01-15T10:00:00+00:00"}
    assert message_from_dict(data) == Message(role="user", content="hi", timestamp=TS)


def test_page_dict_round_trip():
    page = make_page()
    assert page_from_dict(page_to_dict(page)) == page


def test_naive_datetime_defaults_to_utc():
    assert str_to_dt("2026-01-15T10:00:00") == TS


def test_epoch_zero_timestamp_kept():
    msg = message_from_dict({"role": "user", "content": "hi", "timestamp": 0})
    assert msg.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_naive_message_timestamp_is_utc():
    msg = Message(role="user", content="hi", timestamp=TS.replace(tzinfo=None))
    assert msg.timestamp == TS
    assert msg.timestamp.tzinfo is not None
    assert message_from_dict(message_to_dict(msg)) == msg


def test_delete_page(tmp_store_dir):
    store = PageStore(tmp_store_dir / "pages")
    store.write_page(make_page("frag_gone"))
    assert store.delete_page("frag_gone") is True
    assert store.read_page("frag_gone") is None
    assert store.delete_page("frag_gone") is False
