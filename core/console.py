"""
Audit console

Presentation collaborator for the protocol. Every act reports a
(message, severity) pair here; entries are mirrored into `logging` and the
most recent ones are kept in memory for the API to serve.
"""

from __future__ import annotations
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

log = logging.getLogger("audit.console")

MAX_CONSOLE_ENTRIES = 200


class Severity(str, Enum):
    USER = "user"
    SYSTEM = "system"
    AUDIT = "audit"
    ERROR = "error"
    INTERNAL = "internal"
    AI = "ai"


_LEVELS = {
    Severity.USER: logging.INFO,
    Severity.SYSTEM: logging.INFO,
    Severity.AUDIT: logging.INFO,
    Severity.ERROR: logging.WARNING,
    Severity.INTERNAL: logging.DEBUG,
    Severity.AI: logging.INFO,
}


@dataclass
class ConsoleEntry:
    ts: float
    message: str
    severity: Severity
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }


Sink = Callable[[ConsoleEntry], None]


class ConsoleLog:
    def __init__(self, maxlen: int = MAX_CONSOLE_ENTRIES, clock: Callable[[], float] = time.time) -> None:
        self._entries: Deque[ConsoleEntry] = deque(maxlen=maxlen)
        self._sinks: List[Sink] = []
        self._clock = clock

    def log(self, message: str, severity: Severity = Severity.SYSTEM, **details: Any) -> ConsoleEntry:
        entry = ConsoleEntry(ts=self._clock(), message=message, severity=Severity(severity), details=details)
        self._entries.append(entry)
        log.log(_LEVELS[entry.severity], "%s", message)
        for sink in list(self._sinks):
            sink(entry)
        return entry

    def add_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def tail(self, limit: Optional[int] = None) -> List[ConsoleEntry]:
        items = list(self._entries)
        if limit is not None:
            items = items[-max(0, limit):] if limit else []
        return items

    def clear(self) -> None:
        self._entries.clear()
