"""
Audit Ledger State

Typed view of the shared system document:
- isHalted              global kill switch
- vibration_level       {value, last_decay}
- currency_rates        code -> rate
- accounts              ordered, flat {id, name, <CODE>: balance, ...}
- infrastructure        key -> {value, last_change}

The persisted layout is a flat document with nested objects only for
vibration_level and each infrastructure entry. Patches handled by the
StateStore use the attribute names below; `patch_to_document` maps them to
document keys.
"""

from __future__ import annotations
import copy
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from core.constants import VIBRATION_CEILING

# attribute name -> persisted document key
DOCUMENT_KEYS: Dict[str, str] = {
    "is_halted": "isHalted",
    "vibration_level": "vibration_level",
    "currency_rates": "currency_rates",
    "accounts": "accounts",
    "infrastructure": "infrastructure",
}
ATTRIBUTE_NAMES: Dict[str, str] = {v: k for k, v in DOCUMENT_KEYS.items()}


@dataclass
class VibrationLevel:
    value: float = 0.0
    last_decay: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"value": self.value, "last_decay": self.last_decay}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "VibrationLevel":
        value = float(raw.get("value", 0.0))
        # pushed documents are clamped to [0, VIBRATION_CEILING]; NaN reads as 0
        value = 0.0 if math.isnan(value) else max(0.0, min(value, float(VIBRATION_CEILING)))
        return cls(value=value, last_decay=float(raw.get("last_decay", 0.0)))


@dataclass
class InfraEntry:
    value: float
    last_change: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"value": self.value, "last_change": self.last_change}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "InfraEntry":
        return cls(value=float(raw.get("value", 0.0)), last_change=float(raw.get("last_change", 0.0)))


@dataclass
class Account:
    id: str
    name: str
    balances: Dict[str, float] = field(default_factory=dict)

    def balance(self, currency: str) -> float:
        return self.balances.get(currency, 0.0)

    def with_balances(self, **changes: float) -> "Account":
        balances = dict(self.balances)
        balances.update(changes)
        return Account(id=self.id, name=self.name, balances=balances)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name}
        out.update(self.balances)
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Account":
        balances = {
            k: float(v)
            for k, v in raw.items()
            if k not in ("id", "name") and isinstance(v, (int, float)) and not isinstance(v, bool)
        }
        return cls(id=str(raw["id"]), name=str(raw.get("name", "")), balances=balances)


@dataclass
class SystemState:
    is_halted: bool = False
    vibration_level: VibrationLevel = field(default_factory=VibrationLevel)
    currency_rates: Dict[str, float] = field(default_factory=dict)
    accounts: List[Account] = field(default_factory=list)
    infrastructure: Dict[str, InfraEntry] = field(default_factory=dict)

    def copy(self) -> "SystemState":
        return copy.deepcopy(self)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        if not account_id:
            return None
        for acc in self.accounts:
            if acc.id == account_id:
                return acc
        return None

    def supply(self) -> Dict[str, float]:
        """Total balance per currency across all accounts."""
        totals: Dict[str, float] = {}
        for acc in self.accounts:
            for cur, amt in acc.balances.items():
                totals[cur] = totals.get(cur, 0.0) + amt
        return totals

    def to_document(self) -> Dict[str, Any]:
        return {
            "isHalted": self.is_halted,
            "vibration_level": self.vibration_level.to_dict(),
            "currency_rates": dict(self.currency_rates),
            "accounts": [a.to_dict() for a in self.accounts],
            "infrastructure": {k: e.to_dict() for k, e in self.infrastructure.items()},
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "SystemState":
        state = cls()
        for attr, value in document_to_patch(doc).items():
            setattr(state, attr, value)
        return state


def _field_from_document(attr: str, raw: Any) -> Any:
    if attr == "is_halted":
        return bool(raw)
    if attr == "vibration_level":
        return VibrationLevel.from_dict(raw or {})
    if attr == "currency_rates":
        return {str(k): float(v) for k, v in (raw or {}).items()}
    if attr == "accounts":
        return [Account.from_dict(a) for a in (raw or []) if isinstance(a, dict) and a.get("id")]
    if attr == "infrastructure":
        return {str(k): InfraEntry.from_dict(v) for k, v in (raw or {}).items() if isinstance(v, dict)}
    raise KeyError(attr)


def _field_to_document(attr: str, value: Any) -> Any:
    if attr == "is_halted":
        return bool(value)
    if attr == "vibration_level":
        return value.to_dict()
    if attr == "currency_rates":
        return dict(value)
    if attr == "accounts":
        return [a.to_dict() for a in value]
    if attr == "infrastructure":
        return {k: e.to_dict() for k, e in value.items()}
    raise KeyError(attr)


def document_to_patch(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a (partial) document into an attribute patch. Unknown keys are ignored."""
    patch: Dict[str, Any] = {}
    for key, raw in doc.items():
        attr = ATTRIBUTE_NAMES.get(key)
        if attr is not None:
            patch[attr] = _field_from_document(attr, raw)
    return patch


def patch_to_document(patch: Dict[str, Any]) -> Dict[str, Any]:
    return {DOCUMENT_KEYS[attr]: _field_to_document(attr, value) for attr, value in patch.items()}


def default_state(currencies: Iterable[str], now: float) -> SystemState:
    """Reference starting snapshot (two accounts, three rated currencies)."""
    codes = list(currencies)
    rates = {"ALPHA": 1.0, "BETA": 10.0, "GAMMA": 100.0}

    def _balances(**seed: float) -> Dict[str, float]:
        return {code: float(seed.get(code, 0.0)) for code in codes}

    return SystemState(
        is_halted=False,
        vibration_level=VibrationLevel(value=0.0, last_decay=now),
        currency_rates={c: rates[c] for c in codes if c in rates},
        accounts=[
            Account(id="CORE_BANK_A", name="Central Bank A", balances=_balances(ALPHA=1000.0, BETA=500.0, GAMMA=100.0)),
            Account(id="USER_AUDIT_B", name="Auditor B", balances=_balances(ALPHA=50.0)),
        ],
        infrastructure={
            "energy_supply": InfraEntry(value=100.0, last_change=now),
            "net_stability": InfraEntry(value=100.0, last_change=now),
        },
    )
