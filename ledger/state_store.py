"""
StateStore

Owns the canonical in-memory SystemState for one protocol instance.

Writes are two-phase:
1. apply_local(patch)  - shallow merge into the local snapshot (visible at once)
2. sync_remote(patch)  - forward the same patch to the document store

A failed remote write is logged and returned as PersistError. By default
the local state is NOT rolled back (optimistic, local-first); with
rollback_on_persist_failure=True the pre-apply snapshot is restored.

Snapshot swaps are serialized by a lock because remote snapshots may arrive
on a backend worker thread. Concurrent writes to the same field are
last-write-wins.
"""

from __future__ import annotations
import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from ledger.errors import PersistError
from ledger.state import DOCUMENT_KEYS, SystemState, document_to_patch, patch_to_document
from storage.document_store import DocumentStore, StoreError, Subscription

log = logging.getLogger(__name__)

StateListener = Callable[[SystemState], None]


class StateStore:
    def __init__(
        self,
        document_store: DocumentStore,
        key: str,
        initial: SystemState,
        rollback_on_persist_failure: bool = False,
    ) -> None:
        self._documents = document_store
        self._key = key
        self._state = initial.copy()
        self.rollback_on_persist_failure = rollback_on_persist_failure
        self._listeners: List[StateListener] = []
        self._subscription: Optional[Subscription] = None
        self._syncing = False
        self._lock = threading.RLock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def backend(self) -> str:
        return self._documents.name

    # ------------------------------------------------------------------ #
    # Startup / remote snapshots
    # ------------------------------------------------------------------ #
    def connect(self) -> SystemState:
        """Load (or seed) the persisted document and follow remote changes."""
        doc = self._documents.read_or_create(self._key, self._state.to_document())
        self.receive_snapshot(doc)
        if self._subscription is None:
            self._subscription = self._documents.subscribe(self._key, self._on_remote_change)
        return self.current()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _on_remote_change(self, doc: Dict[str, Any]) -> None:
        if self._syncing:
            return
        self.receive_snapshot(doc)

    def receive_snapshot(self, doc: Dict[str, Any]) -> None:
        """Merge a pushed snapshot over local state (remote wins field by field)."""
        patch = document_to_patch(doc)
        if patch:
            self.apply_local(patch)

    # ------------------------------------------------------------------ #
    # Read / write
    # ------------------------------------------------------------------ #
    def current(self) -> SystemState:
        with self._lock:
            return self._state.copy()

    def apply_local(self, patch: Dict[str, Any]) -> None:
        unknown = set(patch) - set(DOCUMENT_KEYS)
        if unknown:
            raise KeyError(f"Unknown state fields in patch: {sorted(unknown)}")
        with self._lock:
            new_state = self._state.copy()
            for attr, value in patch.items():
                setattr(new_state, attr, copy.deepcopy(value))
            self._state = new_state
        self._notify()

    def sync_remote(self, patch: Dict[str, Any]) -> Optional[PersistError]:
        self._syncing = True
        try:
            self._documents.update(self._key, patch_to_document(patch))
        except StoreError as e:
            log.error("[StateStore] Save error for %s: %s", self._key, e)
            return PersistError(str(e), cause=e)
        finally:
            self._syncing = False
        return None

    def apply(self, patch: Dict[str, Any]) -> Optional[PersistError]:
        with self._lock:
            previous = self._state
        self.apply_local(patch)
        error = self.sync_remote(patch)
        if error is not None and self.rollback_on_persist_failure:
            log.warning("[StateStore] Rolling back local patch %s", sorted(patch))
            with self._lock:
                self._state = previous
            self._notify()
        return error

    # ------------------------------------------------------------------ #
    # Listeners
    # ------------------------------------------------------------------ #
    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.current())
