"""Search history tests."""
from datetime import datetime, timedelta, timezone

from promptlib.features.search.service import MAX_HISTORY_ITEMS, STORAGE_KEY, SearchHistory
from promptlib.features.usage.stores import MemoryBlobStore

T0 = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_repeated_query_bumps_existing_entry():
    history = SearchHistory(MemoryBlobStore())
    history.record("SEO", now=T0)
    history.record("email", now=T0 + timedelta(minutes=1))
    history.record("seo", now=T0 + timedelta(minutes=2))

    items = history.items()
    assert [i.query for i in items] == ["SEO", "email"]
    assert items[0].count == 2


def test_blank_queries_are_ignored():
    store = MemoryBlobStore()
    SearchHistory(store).record("   ", now=T0)
    assert STORAGE_KEY not in store.blobs


def test_history_is_capped():
    history = SearchHistory(MemoryBlobStore())
    for i in range(MAX_HISTORY_ITEMS + 5):
        history.record(f"q{i}", now=T0 + timedelta(seconds=i))

    items = history.items()
    assert len(items) == MAX_HISTORY_ITEMS
    assert items[0].query == f"q{MAX_HISTORY_ITEMS + 4}"


def test_popular_orders_by_count():
    history = SearchHistory(MemoryBlobStore())
    history.record("a", now=T0)
    history.record("b", now=T0 + timedelta(seconds=1))
    history.record("b", now=T0 + timedelta(seconds=2))
    assert [i.query for i in history.popular()][:2] == ["b", "a"]


def test_delete_and_clear():
    history = SearchHistory(MemoryBlobStore())
    history.record("a", now=T0)
    history.record("b", now=T0 + timedelta(seconds=1))

    assert [i.query for i in history.delete("a")] == ["b"]
    history.clear()
    assert history.items() == []


def test_malformed_blob_reads_as_empty():
    assert SearchHistory(MemoryBlobStore({STORAGE_KEY: "oops"})).items() == []


def test_delete_ignores_case_like_record():
    history = SearchHistory(MemoryBlobStore())
    history.record("Email subject", now=T0)
    history.record("seo", now=T0 + timedelta(seconds=1))

    assert [i.query for i in history.delete("email SUBJECT")] == ["seo"]
