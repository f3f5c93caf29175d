from __future__ import annotations

import json

import pytest

from conftest import FakeRedis
from storage.document_store import (
    MemoryDocumentStore,
    RedisDocumentStore,
    StoreError,
    open_document_store,
)


def test_memory_read_or_create_seeds_once():
    store = MemoryDocumentStore()
    assert store.read_or_create("k", {"a": 1}) == {"a": 1}
    assert store.read_or_create("k", {"a": 2}) == {"a": 1}


def test_memory_update_is_shallow_and_notifies():
    store = MemoryDocumentStore()
    store.read_or_create("k", {"a": {"x": 1, "y": 2}, "b": 1})
    seen = []
    sub = store.subscribe("k", seen.append)
    store.update("k", {"a": {"x": 9}})
    assert seen == [{"a": {"x": 9}, "b": 1}]
    sub.close()
    store.update("k", {"b": 2})
    assert len(seen) == 1


def test_memory_update_without_document_fails():
    with pytest.raises(StoreError):
        MemoryDocumentStore().update("missing", {"a": 1})


def test_open_without_url_uses_memory():
    assert open_document_store("").name == "memory"


def test_open_with_unreachable_redis_falls_back():
    assert open_document_store("redis://127.0.0.1:1/0").name == "memory"


class BrokenRedis(FakeRedis):
    def set(self, key, value, nx=False):
        raise ConnectionError("down")


def test_redis_store_merges_and_publishes():
    client = FakeRedis()
    store = RedisDocumentStore(client)
    assert store.read_or_create("k", {"a": 1, "b": 1}) == {"a": 1, "b": 1}
    store.update("k", {"b": 2})
    assert json.loads(client.kv["k"]) == {"a": 1, "b": 2}
    channel, raw = client.published[-1]
    assert channel == "k:changes"
    assert json.loads(raw) == {"origin": store.origin, "doc": {"a": 1, "b": 2}}


def test_redis_errors_become_store_errors():
    store = RedisDocumentStore(BrokenRedis())
    with pytest.raises(StoreError):
        store.update("k", {"a": 1})


def test_redis_store_skips_its_own_announcements():
    client = FakeRedis()
    ours, theirs = RedisDocumentStore(client), RedisDocumentStore(client)
    ours.read_or_create("k", {"a": 1})
    seen = []
    ours.subscribe("k", seen.append)

    ours.update("k", {"a": 2})
    client.deliver()
    assert seen == []

    theirs.update("k", {"a": 3})
    client.deliver()
    assert seen == [{"a": 3}]


def test_redis_store_drops_malformed_announcements():
    client = FakeRedis()
    store = RedisDocumentStore(client)
    seen = []
    store.subscribe("k", seen.append)
    client.publish("k:changes", "not json")
    client.publish("k:changes", json.dumps({"a": 1}))
    client.deliver()
    assert seen == []
