"""
Document store (persistence collaborator)

A keyed JSON document store with snapshot listeners:
- read_or_create(key, default) -> document
- subscribe(key, on_change)    -> Subscription
- update(key, patch)           -> shallow merge, raises StoreError on failure

Two backends:
- MemoryDocumentStore: JSON strings in a dict, listeners called inline
- RedisDocumentStore: JSON string at the key, changes announced on a
  pub/sub channel `<key>:changes` as {"origin": <store id>, "doc": ...};
  a store never delivers its own announcements back to its listeners
"""

from __future__ import annotations
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)

Document = Dict[str, Any]
Listener = Callable[[Document], None]


class StoreError(Exception):
    pass


class Subscription:
    def __init__(self, on_close: Callable[[], None]) -> None:
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._on_close()


class DocumentStore:
    name = "abstract"

    def read_or_create(self, key: str, default: Document) -> Document:
        raise NotImplementedError

    def subscribe(self, key: str, on_change: Listener) -> Subscription:
        raise NotImplementedError

    def update(self, key: str, patch: Document) -> None:
        raise NotImplementedError


# ---------------------------
# Memory
# ---------------------------
class MemoryDocumentStore(DocumentStore):
    name = "memory"

    def __init__(self) -> None:
        self._mem_kv: Dict[str, str] = {}
        self._listeners: Dict[str, List[Listener]] = {}

    def _load(self, key: str) -> Optional[Document]:
        raw = self._mem_kv.get(key)
        return json.loads(raw) if raw is not None else None

    def _notify(self, key: str, doc: Document) -> None:
        for listener in list(self._listeners.get(key, [])):
            listener(json.loads(json.dumps(doc)))

    def read_or_create(self, key: str, default: Document) -> Document:
        doc = self._load(key)
        if doc is None:
            doc = json.loads(json.dumps(default))
            self._mem_kv[key] = json.dumps(doc)
        return doc

    def set(self, key: str, doc: Document) -> None:
        """Replace the whole document and notify listeners (remote push)."""
        self._mem_kv[key] = json.dumps(doc)
        self._notify(key, doc)

    def subscribe(self, key: str, on_change: Listener) -> Subscription:
        self._listeners.setdefault(key, []).append(on_change)

        def _close() -> None:
            listeners = self._listeners.get(key, [])
            if on_change in listeners:
                listeners.remove(on_change)

        return Subscription(_close)

    def update(self, key: str, patch: Document) -> None:
        doc = self._load(key)
        if doc is None:
            raise StoreError(f"No document at {key!r}; read_or_create first.")
        doc.update(patch)
        self._mem_kv[key] = json.dumps(doc)
        self._notify(key, doc)


# ---------------------------
# Redis
# ---------------------------
class RedisDocumentStore(DocumentStore):
    name = "redis"

    def __init__(self, client: Any) -> None:
        self._client = client
        self.origin = uuid.uuid4().hex

    @classmethod
    def from_url(cls, url: str) -> "RedisDocumentStore":
        import redis

        return cls(redis.Redis.from_url(url, decode_responses=True))

    @staticmethod
    def channel(key: str) -> str:
        return f"{key}:changes"

    def ping(self) -> bool:
        return bool(self._client.ping())

    def _load(self, key: str) -> Optional[Document]:
        raw = self._client.get(key)
        return json.loads(raw) if raw else None

    def read_or_create(self, key: str, default: Document) -> Document:
        try:
            # NX keeps a concurrently created document.
            self._client.set(key, json.dumps(default), nx=True)
            doc = self._load(key)
        except Exception as e:
            raise StoreError(f"Redis read failed for {key!r}: {e}") from e
        return doc if doc is not None else json.loads(json.dumps(default))

    def subscribe(self, key: str, on_change: Listener) -> Subscription:
        def _handler(message: Dict[str, Any]) -> None:
            try:
                envelope = json.loads(message["data"])
                origin, doc = envelope["origin"], envelope["doc"]
            except (TypeError, ValueError, KeyError) as e:
                log.warning("[RedisDocumentStore] Dropped malformed snapshot on %s: %s", key, e)
                return
            if origin == self.origin or not isinstance(doc, dict):
                return
            on_change(doc)

        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{self.channel(key): _handler})
        worker = pubsub.run_in_thread(sleep_time=0.1, daemon=True)

        def _close() -> None:
            worker.stop()
            pubsub.close()

        return Subscription(_close)

    def update(self, key: str, patch: Document) -> None:
        try:
            doc = self._load(key) or {}
            doc.update(patch)
            self._client.set(key, json.dumps(doc))
            self._client.publish(self.channel(key), json.dumps({"origin": self.origin, "doc": doc}))
        except Exception as e:
            raise StoreError(f"Redis update failed for {key!r}: {e}") from e


def open_document_store(redis_url: str = "") -> DocumentStore:
    """Redis when configured and reachable, memory otherwise (never crash)."""
    if not redis_url:
        return MemoryDocumentStore()
    try:
        store = RedisDocumentStore.from_url(redis_url)
        store.ping()
        return store
    except Exception as e:
        log.warning("[storage] Redis unavailable (%s); falling back to memory.", e)
        return MemoryDocumentStore()
