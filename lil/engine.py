"""
LIL rule engine

Evaluates the static rule list against a state snapshot plus the supply
query (per-currency totals across accounts). It is read-only with respect
to state: firing a rule runs its actions (logging only, for now) and
reports the rule's vibration_cost without charging it.

Action kinds are looked up in a registry; new kinds are added with
`register_action` and need no change to the interpreter.
"""

from __future__ import annotations
import logging
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.console import ConsoleLog, Severity
from ledger.state import SystemState
from lil.rules import Action, Predicate, Rule

log = logging.getLogger(__name__)

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}

LOG_LEVELS: Dict[str, Severity] = {
    "error": Severity.ERROR,
    "warning": Severity.SYSTEM,
    "audit": Severity.AUDIT,
    "info": Severity.INTERNAL,
}

_MISSING = object()


@dataclass
class EvaluationContext:
    document: Dict[str, Any]
    supply: Dict[str, float]


@dataclass
class RuleFiring:
    rule_id: str
    description: str
    vibration_cost: float
    outputs: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "description": self.description,
            "vibration_cost": self.vibration_cost,
            "outputs": self.outputs,
        }


ActionHandler = Callable[[Action, Rule, EvaluationContext], Dict[str, Any]]


def resolve_path(document: Dict[str, Any], path: str) -> Any:
    node: Any = document
    for part in path.split("."):
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return _MISSING
    return node


class RuleEngine:
    def __init__(
        self,
        rules: List[Rule],
        console: ConsoleLog,
        handlers: Optional[Dict[str, ActionHandler]] = None,
    ) -> None:
        self._rules: Tuple[Rule, ...] = tuple(rules)
        self._console = console
        self._handlers: Dict[str, ActionHandler] = {"LOG": self._log_action}
        self._handlers.update(handlers or {})
        unknown = {a.type for r in self._rules for a in r.actions} - set(self._handlers)
        if unknown:
            raise ValueError(f"LIL rules use unregistered action types: {sorted(unknown)}")

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def register_action(self, action_type: str, handler: ActionHandler) -> None:
        self._handlers[action_type] = handler

    # ------------------------------------------------------------------ #
    # Predicates
    # ------------------------------------------------------------------ #
    def check(self, predicate: Predicate, ctx: EvaluationContext) -> bool:
        if predicate.type == "STATE_CHECK":
            actual = resolve_path(ctx.document, predicate.param)
        else:
            actual = ctx.supply.get(predicate.param, 0.0)
        if actual is _MISSING:
            log.debug("[LIL] Unknown state path %r", predicate.param)
            return False
        try:
            return bool(OPERATORS[predicate.operator](actual, predicate.value))
        except TypeError:
            return False

    def matches(self, rule: Rule, ctx: EvaluationContext) -> bool:
        return all(self.check(p, ctx) for p in rule.triggers)

    # ------------------------------------------------------------------ #
    # Evaluation
    # ------------------------------------------------------------------ #
    def evaluate(self, state: SystemState) -> List[RuleFiring]:
        ctx = EvaluationContext(document=state.to_document(), supply=state.supply())
        firings: List[RuleFiring] = []
        for rule in self._rules:
            if not self.matches(rule, ctx):
                continue
            firing = RuleFiring(rule_id=rule.id, description=rule.description, vibration_cost=rule.vibration_cost)
            for action in rule.actions:
                firing.outputs.append(self._handlers[action.type](action, rule, ctx))
            firings.append(firing)
        return firings

    def _log_action(self, action: Action, rule: Rule, ctx: EvaluationContext) -> Dict[str, Any]:
        severity = LOG_LEVELS.get(action.level, Severity.INTERNAL)
        self._console.log(f"[LIL/{rule.id}]: {action.message}", severity, rule_id=rule.id)
        return {"type": action.type, "message": action.message, "level": action.level}
