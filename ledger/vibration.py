"""
VibrationGauge

Time-decayed activity metric. Every successful act adds to it, it decays at
DECAY_RATE per second, and validation refuses economic acts once it reaches
VIBRATION_LIMIT. The stored value is clamped to [0, VIBRATION_CEILING].

Small decays (< DECAY_PERSIST_THRESHOLD) are applied locally only, to keep
the periodic tick from writing to the document store every second.
"""

from __future__ import annotations
import asyncio
import logging
import time
from typing import Callable, Optional

from core.constants import (
    DECAY_INTERVAL_SECONDS,
    DECAY_MIN_ELAPSED,
    DECAY_PERSIST_THRESHOLD,
    DECAY_RATE,
    VIBRATION_CEILING,
    VIBRATION_LIMIT,
)
from ledger.errors import PersistError
from ledger.state import VibrationLevel
from ledger.state_store import StateStore

log = logging.getLogger(__name__)


class VibrationGauge:
    def __init__(self, store: StateStore, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    @property
    def value(self) -> float:
        return self._store.current().vibration_level.value

    @property
    def limit(self) -> float:
        return VIBRATION_LIMIT

    def ratio(self) -> float:
        return self.value / VIBRATION_LIMIT

    def add(self, amount: float) -> Optional[PersistError]:
        level = self._store.current().vibration_level
        new_value = max(0.0, min(level.value + amount, VIBRATION_CEILING))
        return self._store.apply(
            {"vibration_level": VibrationLevel(value=new_value, last_decay=level.last_decay)}
        )

    def decay(self, now: Optional[float] = None) -> Optional[PersistError]:
        now = self._clock() if now is None else now
        level = self._store.current().vibration_level
        elapsed = now - level.last_decay
        if elapsed < DECAY_MIN_ELAPSED:
            return None

        new_value = max(0.0, level.value - elapsed * DECAY_RATE)
        patch = {"vibration_level": VibrationLevel(value=new_value, last_decay=now)}
        if abs(new_value - level.value) >= DECAY_PERSIST_THRESHOLD:
            return self._store.apply(patch)
        self._store.apply_local(patch)
        return None

    def reset(self) -> Optional[PersistError]:
        return self._store.apply({"vibration_level": VibrationLevel(value=0.0, last_decay=self._clock())})


class DecayTicker:
    """Calls gauge.decay() on a fixed interval from the running event loop."""

    def __init__(self, gauge: VibrationGauge, interval: float = DECAY_INTERVAL_SECONDS) -> None:
        self._gauge = gauge
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._gauge.decay()
            except Exception:
                log.exception("[DecayTicker] Decay tick failed; continuing")

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
