"""
LIL rule models

A rule fires when all of its triggers hold. Rules are immutable
configuration: validated once when the table is loaded, never mutated.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from core.config import DEFAULT_RULES_PATH, load_yaml

PredicateType = Literal["STATE_CHECK", "SUPPLY_CHECK"]
Operator = Literal["==", "!=", ">", "<", ">=", "<="]


class Predicate(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PredicateType
    param: str = Field(min_length=1)
    operator: Operator
    value: Any = None


class Action(BaseModel):
    # extra fields are kept for action kinds that need more parameters
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = Field(min_length=1)
    message: str = ""
    level: str = "info"


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    description: str = ""
    triggers: List[Predicate] = Field(min_length=1)
    actions: List[Action] = Field(default_factory=list)
    vibration_cost: float = Field(default=0.0, ge=0.0)


def parse_rules(data: Any) -> List[Rule]:
    raw = data.get("rules", []) if isinstance(data, dict) else data or []
    rules = [Rule.model_validate(r) for r in raw]
    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            raise ValueError(f"Duplicate LIL rule id {rule.id!r}")
        seen.add(rule.id)
    return rules


def load_rules(path: Path = DEFAULT_RULES_PATH) -> List[Rule]:
    if not path.exists():
        raise RuntimeError(f"LIL rule table not found at {path}")
    return parse_rules(load_yaml(path))
