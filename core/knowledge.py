"""
Knowledge base

Static definitions shared by the ledger and the dialogue layer:
- the currency set (membership is checked, never hardcoded)
- protocol name / version strings
- guidelines quoted in narrative responses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from core.config import DEFAULT_KNOWLEDGE_PATH, load_yaml


@dataclass(frozen=True)
class CurrencyDef:
    code: str
    name: str = ""


@dataclass(frozen=True)
class Knowledge:
    protocol_name: str
    protocol_version: str
    vibration_title: str
    currencies: List[CurrencyDef] = field(default_factory=list)
    guidelines: List[str] = field(default_factory=list)

    @property
    def currency_codes(self) -> List[str]:
        return [c.code for c in self.currencies]

    def is_currency(self, code: Any) -> bool:
        return isinstance(code, str) and any(c.code == code for c in self.currencies)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Knowledge":
        currencies = []
        for raw in data.get("currencies", []) or []:
            if isinstance(raw, str):
                currencies.append(CurrencyDef(code=raw.upper().strip()))
            elif isinstance(raw, dict) and raw.get("code"):
                currencies.append(
                    CurrencyDef(code=str(raw["code"]).upper().strip(), name=str(raw.get("name", "")))
                )
        return cls(
            protocol_name=str(data.get("protocol_name", "Logos Audit Protocol")),
            protocol_version=str(data.get("protocol_version", "v0")),
            vibration_title=str(data.get("vibration_title", "Activity level (V)")),
            currencies=currencies,
            guidelines=[str(g) for g in data.get("guidelines", []) or []],
        )


def load_knowledge(path: Path = DEFAULT_KNOWLEDGE_PATH) -> Knowledge:
    data = load_yaml(path)
    if not data:
        raise RuntimeError(f"Knowledge base not found or empty at {path}")
    return Knowledge.from_dict(data)
