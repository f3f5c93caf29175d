from __future__ import annotations

import asyncio

import pytest

from conftest import T0, make_state
from core.constants import VIBRATION_CEILING
from ledger.state_store import StateStore
from ledger.vibration import DecayTicker, VibrationGauge
from storage.document_store import MemoryDocumentStore

KEY = "system_state:TEST"


def _gauge(clock, vibration=0.0):
    documents = MemoryDocumentStore()
    store = StateStore(documents, KEY, make_state(vibration=vibration))
    store.connect()
    return VibrationGauge(store, clock=clock), store, documents


def _persisted_value(documents):
    return documents.read_or_create(KEY, {})["vibration_level"]["value"]


def test_add_accumulates(clock):
    gauge, _, _ = _gauge(clock)
    gauge.add(3)
    gauge.add(2)
    assert gauge.value == pytest.approx(5.0)


def test_add_clamps_to_ceiling(clock):
    gauge, _, _ = _gauge(clock, vibration=195.0)
    gauge.add(50)
    assert gauge.value == VIBRATION_CEILING == 200.0


def test_decay_below_one_second_is_noop(clock):
    gauge, store, _ = _gauge(clock, vibration=10.0)
    before = store.current().to_document()
    clock.advance(0.5)
    gauge.decay()
    gauge.decay()
    assert store.current().to_document() == before


def test_decay_never_negative(clock):
    gauge, _, _ = _gauge(clock, vibration=2.0)
    clock.advance(60)
    gauge.decay()
    assert gauge.value == 0.0


def test_large_decay_is_persisted(clock):
    gauge, store, documents = _gauge(clock, vibration=50.0)
    clock.advance(10)
    gauge.decay()
    assert gauge.value == pytest.approx(45.0)
    assert store.current().vibration_level.last_decay == T0 + 10
    assert _persisted_value(documents) == pytest.approx(45.0)


def test_small_decay_stays_local(clock):
    gauge, store, documents = _gauge(clock, vibration=50.0)
    clock.advance(1)
    gauge.decay()
    assert gauge.value == pytest.approx(49.5)
    assert store.current().vibration_level.last_decay == T0 + 1
    assert _persisted_value(documents) == pytest.approx(50.0)


def test_reset(clock):
    gauge, store, documents = _gauge(clock, vibration=120.0)
    clock.advance(3)
    gauge.reset()
    assert gauge.value == 0.0
    assert store.current().vibration_level.last_decay == T0 + 3
    assert _persisted_value(documents) == 0.0


def test_ticker_decays_on_interval(clock):
    gauge, _, _ = _gauge(clock, vibration=50.0)

    async def run():
        ticker = DecayTicker(gauge, interval=0.01)
        ticker.start()
        clock.advance(10)
        await asyncio.sleep(0.05)
        await ticker.stop()
        assert not ticker.running

    asyncio.run(run())
    assert gauge.value == pytest.approx(45.0)


class FlakyGauge:
    def __init__(self):
        self.calls = 0

    def decay(self):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("tick failed")


def test_ticker_survives_a_failing_tick():
    gauge = FlakyGauge()

    async def run():
        ticker = DecayTicker(gauge, interval=0.01)
        ticker.start()
        await asyncio.sleep(0.1)
        assert ticker.running
        await ticker.stop()

    asyncio.run(run())
    assert gauge.calls > 1
