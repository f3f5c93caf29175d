from __future__ import annotations

import pytest

from core.config import AuditConfig
from core.knowledge import load_knowledge
from core.protocol import build_protocol
from ledger.state import Account, InfraEntry, SystemState, VibrationLevel
from lil.rules import load_rules
from storage.document_store import MemoryDocumentStore, StoreError

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingDocumentStore(MemoryDocumentStore):
    """Accepts the initial read, then fails every update while `failing` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def update(self, key, patch):
        if self.failing:
            raise StoreError("write rejected")
        super().update(key, patch)


def make_state(accounts=None, vibration=0.0, halted=False, rates=None, now=T0) -> SystemState:
    return SystemState(
        is_halted=halted,
        vibration_level=VibrationLevel(value=vibration, last_decay=now),
        currency_rates=rates if rates is not None else {"ALPHA": 1.0, "BETA": 10.0, "GAMMA": 100.0},
        accounts=accounts if accounts is not None else [
            Account(id="CORE_BANK_A", name="Central Bank A", balances={"ALPHA": 1000.0, "BETA": 500.0, "GAMMA": 100.0}),
            Account(id="USER_AUDIT_B", name="Auditor B", balances={"ALPHA": 50.0, "BETA": 0.0, "GAMMA": 0.0}),
        ],
        infrastructure={
            "energy_supply": InfraEntry(value=100.0, last_change=now),
            "net_stability": InfraEntry(value=100.0, last_change=now),
        },
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def knowledge():
    return load_knowledge()


@pytest.fixture
def rules():
    return load_rules()


@pytest.fixture
def config():
    return AuditConfig(app_id="TEST", decay_tick=False)


@pytest.fixture
def documents():
    return MemoryDocumentStore()


@pytest.fixture
def make_protocol(config, documents, knowledge, rules, clock):
    built = []

    def _make(state=None, document_store=None, cfg=None):
        proto = build_protocol(
            cfg or config,
            document_store=document_store or documents,
            initial_state=state or make_state(),
            knowledge=knowledge,
            rules=rules,
            clock=clock,
        )
        built.append(proto)
        return proto

    yield _make
    for proto in built:
        proto.close()


@pytest.fixture
def protocol(make_protocol):
    return make_protocol()


class FakePubSub:
    def __init__(self, client: "FakeRedis") -> None:
        self._client = client
        self.handlers = {}

    def subscribe(self, **handlers) -> None:
        self.handlers.update(handlers)
        self._client.pubsubs.append(self)

    def run_in_thread(self, sleep_time=0.0, daemon=False):
        return FakeWorker()

    def close(self) -> None:
        if self in self._client.pubsubs:
            self._client.pubsubs.remove(self)


class FakeWorker:
    def stop(self) -> None:
        pass


class FakeRedis:
    """In-process Redis double; published messages queue until deliver()."""

    def __init__(self) -> None:
        self.kv = {}
        self.published = []
        self.pubsubs = []

    def ping(self) -> bool:
        return True

    def set(self, key, value, nx=False):
        if nx and key in self.kv:
            return None
        self.kv[key] = value
        return True

    def get(self, key):
        return self.kv.get(key)

    def publish(self, channel, message):
        self.published.append((channel, message))
        return len(self.pubsubs)

    def pubsub(self, ignore_subscribe_messages=False):
        return FakePubSub(self)

    def deliver(self) -> None:
        pending, self.published = self.published, []
        for channel, message in pending:
            for ps in list(self.pubsubs):
                handler = ps.handlers.get(channel)
                if handler is not None:
                    handler({"type": "message", "channel": channel, "data": message})
