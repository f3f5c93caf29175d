from __future__ import annotations

import threading

from conftest import FailingDocumentStore, FakeRedis, make_state
from core.config import AuditConfig
from ledger.errors import ErrorKind, PersistError
from ledger.state import Account, SystemState, VibrationLevel
from ledger.state_store import StateStore
from storage.document_store import MemoryDocumentStore, RedisDocumentStore


def _store(documents=None, rollback=False):
    store = StateStore(documents or MemoryDocumentStore(), "system_state:TEST", make_state(),
                       rollback_on_persist_failure=rollback)
    store.connect()
    return store


def test_current_is_a_defensive_copy():
    store = _store()
    snap = store.current()
    snap.accounts[0].balances["ALPHA"] = -1.0
    snap.is_halted = True
    assert store.current().accounts[0].balance("ALPHA") == 1000.0
    assert store.current().is_halted is False


def test_apply_updates_local_and_remote():
    documents = MemoryDocumentStore()
    store = _store(documents)
    assert store.apply({"is_halted": True}) is None
    assert store.current().is_halted is True
    doc = documents.read_or_create("system_state:TEST", {})
    assert doc["isHalted"] is True


def test_apply_is_shallow_and_leaves_other_fields_untouched():
    store = _store()
    before = store.current().to_document()
    store.apply({"vibration_level": VibrationLevel(value=7.0, last_decay=1.0)})
    after = store.current().to_document()
    assert after["vibration_level"] == {"value": 7.0, "last_decay": 1.0}
    for key in ("isHalted", "currency_rates", "accounts", "infrastructure"):
        assert after[key] == before[key]


def test_persist_failure_keeps_local_state_by_default():
    documents = FailingDocumentStore()
    store = _store(documents)
    documents.failing = True
    error = store.apply({"is_halted": True})
    assert isinstance(error, PersistError)
    assert error.kind is ErrorKind.PERSIST_ERROR
    assert store.current().is_halted is True


def test_persist_failure_rolls_back_when_configured():
    documents = FailingDocumentStore()
    store = _store(documents, rollback=True)
    documents.failing = True
    assert store.apply({"is_halted": True}) is not None
    assert store.current().is_halted is False


def test_remote_snapshot_overwrites_local_fields():
    documents = MemoryDocumentStore()
    store = _store(documents)
    doc = documents.read_or_create("system_state:TEST", {})
    doc["isHalted"] = True
    doc["accounts"] = [{"id": "ONLY", "name": "Only", "ALPHA": 1.0}]
    documents.set("system_state:TEST", doc)

    state = store.current()
    assert state.is_halted is True
    assert [a.id for a in state.accounts] == ["ONLY"]


def test_own_writes_are_not_echoed_back():
    documents = MemoryDocumentStore()
    store = _store(documents)
    store.apply_local({"vibration_level": VibrationLevel(value=42.0, last_decay=5.0)})
    store.apply({"is_halted": True})
    # the persisted document still has the old vibration; the echo must not clobber local state
    assert store.current().vibration_level.value == 42.0


def test_existing_document_wins_over_initial_state():
    documents = MemoryDocumentStore()
    documents.read_or_create("system_state:TEST", make_state(halted=True).to_document())
    store = _store(documents)
    assert store.current().is_halted is True


def test_listeners_receive_new_state():
    store = _store()
    seen = []
    store.subscribe(lambda s: seen.append(s.is_halted))
    store.apply({"is_halted": True})
    assert seen[-1] is True


def test_document_round_trip_keeps_flat_account_layout():
    state = SystemState(accounts=[Account(id="X", name="x", balances={"ALPHA": 2.5})])
    doc = state.to_document()
    assert doc["accounts"] == [{"id": "X", "name": "x", "ALPHA": 2.5}]
    assert SystemState.from_document(doc).accounts[0].balance("ALPHA") == 2.5


def test_state_key_uses_app_id():
    assert AuditConfig(app_id="MSGAI-Z").state_key == "system_state:MSGAI-Z"


def test_redis_echo_does_not_revert_newer_local_state():
    client = FakeRedis()
    store = StateStore(RedisDocumentStore(client), "system_state:TEST", make_state(vibration=50.0))
    store.connect()
    store.apply_local({"vibration_level": VibrationLevel(value=49.5, last_decay=2.0)})
    store.apply({"is_halted": True})

    worker = threading.Thread(target=client.deliver)
    worker.start()
    worker.join()

    state = store.current()
    assert state.is_halted is True
    assert state.vibration_level.value == 49.5
    store.close()


def test_redis_snapshot_from_another_instance_is_merged():
    client = FakeRedis()
    store = StateStore(RedisDocumentStore(client), "system_state:TEST", make_state())
    store.connect()
    other = RedisDocumentStore(client)
    other.update("system_state:TEST", {"isHalted": True})

    worker = threading.Thread(target=client.deliver)
    worker.start()
    worker.join()

    assert store.current().is_halted is True
    store.close()


def test_pushed_vibration_is_clamped_into_range():
    store = _store()
    store.receive_snapshot({"vibration_level": {"value": 500.0, "last_decay": 1.0}})
    assert store.current().vibration_level.value == 200.0
    store.receive_snapshot({"vibration_level": {"value": -3.0, "last_decay": 1.0}})
    assert store.current().vibration_level.value == 0.0
    store.receive_snapshot({"vibration_level": {"value": float("nan"), "last_decay": 1.0}})
    assert store.current().vibration_level.value == 0.0
