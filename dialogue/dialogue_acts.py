"""
Dialogue acts

Text console for the audit protocol. A prompt is either:
- a Z-function (internal system command: /status, /reset vibration), or
- a question for the internal logos inference, which answers from the
  knowledge base and the current state and costs a little vibration.

Nothing runs while the core is halted; inference is also refused once
vibration reaches the limit (Z-functions still work, so the operator can
reset it).
"""

from __future__ import annotations
import random
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from core.console import ConsoleLog, Severity
from core.constants import ACT_COSTS, VIBRATION_LIMIT
from core.knowledge import Knowledge
from ledger.acts import LedgerActs
from ledger.state import SystemState
from ledger.state_store import StateStore
from ledger.vibration import VibrationGauge

WARN_RATIO = 0.8
CRITICAL_RATIO = 0.9


@dataclass
class DialogueReply:
    ok: bool
    kind: str          # "z_function" | "inference" | "refused" | "ignored"
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "kind": self.kind, "text": self.text}


def frame_query(prompt: str, state: SystemState) -> str:
    status = "HALTED" if state.is_halted else "OPERATIONAL"
    return f"[state: {status}, V:{state.vibration_level.value:.1f}] {prompt}"


def _mentions(prompt: str, *words: str) -> bool:
    lowered = prompt.lower()
    return any(re.search(rf"\b{re.escape(w.lower())}\b", lowered) for w in words)


class DialogueEngine:
    def __init__(
        self,
        store: StateStore,
        gauge: VibrationGauge,
        acts: LedgerActs,
        knowledge: Knowledge,
        console: ConsoleLog,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._gauge = gauge
        self._acts = acts
        self._knowledge = knowledge
        self._console = console
        self._rng = rng or random.Random()
        self._z_functions: List[Tuple[Pattern[str], Callable[[], str]]] = [
            (re.compile(r"^/status$", re.I), self._z_status),
            (re.compile(r"^/reset\s+vibration$", re.I), self._z_reset_vibration),
        ]

    # ------------------------------------------------------------------ #
    # Z-functions
    # ------------------------------------------------------------------ #
    def _z_status(self) -> str:
        state = self._store.current()
        halt = "HALTED" if state.is_halted else "OPERATIONAL"
        rates = ", ".join(f"{c}={r:.2f}" for c, r in sorted(state.currency_rates.items()))
        return "\n".join([
            f"**{self._knowledge.protocol_name} status**:",
            f"- **System**: {halt}",
            f"- **{self._knowledge.vibration_title}**: {state.vibration_level.value:.2f} / {VIBRATION_LIMIT:.0f}",
            f"- **Accounts**: {len(state.accounts)}",
            f"- **Audit rates**: {rates}",
        ])

    def _z_reset_vibration(self) -> str:
        self._acts.reset_vibration()
        return "**[SYSTEM ACT]:** Activity level (V) forcibly reset to 0.0."

    # ------------------------------------------------------------------ #
    # Inference
    # ------------------------------------------------------------------ #
    def infer(self, prompt: str, state: SystemState) -> str:
        k = self._knowledge
        lines = [f"Auditor, running inference under **{k.protocol_name}**."]

        if _mentions(prompt, "protocol", "definition"):
            lines.append(f"- Active protocol: {k.protocol_name} ({k.protocol_version})")
            lines.append(f"- See protocol {k.protocol_version} for details.")
        elif _mentions(prompt, "v", "vibration", "activity"):
            value = state.vibration_level.value
            lines.append(f"- {k.vibration_title} is currently **{value:.2f}** (limit {VIBRATION_LIMIT:.0f}).")
            if value >= VIBRATION_LIMIT * WARN_RATIO:
                lines.append("**Warning**: above 80%; logical perturbation is very high.")
            else:
                lines.append("Perturbation is within the tolerated range.")
        elif _mentions(prompt, "economy", "balance", "currency", "currencies"):
            lines.append(f"- Audited currencies: {', '.join(k.currency_codes)}")
            core_bank = state.find_account("CORE_BANK_A")
            if core_bank is not None:
                lines.append(f"- Central Bank A ALPHA balance: {core_bank.balance('ALPHA'):.2f}")
        elif _mentions(prompt, "halt", "halted", "status"):
            if state.is_halted:
                lines.append("- The system is currently **HALTED** for logical convergence.")
            else:
                lines.append("- The system is currently **OPERATIONAL**.")
        elif k.guidelines:
            lines.append(f'- The audit protocol always observes: "{self._rng.choice(k.guidelines)}"')

        response = "\n".join(lines)
        if state.vibration_level.value >= VIBRATION_LIMIT * CRITICAL_RATIO:
            response = f"CRITICAL: activity level is high; inference reliability is degraded.\n\n{response}"
        return response

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #
    def handle(self, prompt: str) -> DialogueReply:
        prompt = (prompt or "").strip()
        if not prompt:
            return DialogueReply(ok=False, kind="ignored", text="")

        self._console.log(f"> {prompt}", Severity.USER)
        state = self._store.current()

        if state.is_halted:
            text = "The logos core is halted. Acts cannot be executed."
            self._console.log(text, Severity.ERROR)
            return DialogueReply(ok=False, kind="refused", text=text)

        for pattern, fn in self._z_functions:
            if pattern.match(prompt):
                text = fn()
                self._console.log(text, Severity.INTERNAL)
                return DialogueReply(ok=True, kind="z_function", text=text)

        if state.vibration_level.value >= VIBRATION_LIMIT:
            text = "Audit warning: activity level (V) exceeds the limit. Inference is suspended."
            self._console.log(text, Severity.ERROR)
            return DialogueReply(ok=False, kind="refused", text=text)

        self._console.log(f"Running internal logos inference: {frame_query(prompt, state)}", Severity.SYSTEM)
        text = self.infer(prompt, state)
        self._gauge.add(ACT_COSTS["dialogue"])
        self._console.log(text, Severity.AI)
        return DialogueReply(ok=True, kind="inference", text=text)
