"""
Ledger Acts

Catalog of atomic state mutations. Each act:
1. validates against a StateStore snapshot
2. computes the full replacement of the fields it touches
3. commits it through StateStore.apply
4. charges the VibrationGauge (only on success)

Failures never touch the store or the gauge. Every act returns an
ActResult and reports to the audit console.
"""

from __future__ import annotations
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from core.console import ConsoleLog, Severity
from core.constants import ACT_COSTS, INFRA_KEYS, INFRA_LABELS, INFRA_MAX, INFRA_MIN
from core.knowledge import Knowledge
from ledger.errors import ActError, ErrorKind, PersistError
from ledger.state import Account, InfraEntry
from ledger.state_store import StateStore
from ledger.validator import validate
from ledger.vibration import VibrationGauge


@dataclass
class ActResult:
    ok: bool
    act: str
    message: str
    performed: bool = False
    error: Optional[ErrorKind] = None
    persist_error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "act": self.act,
            "message": self.message,
            "performed": self.performed,
            "error": self.error.value if self.error else None,
            "persist_error": self.persist_error,
            "details": self.details,
        }


class LedgerActs:
    def __init__(
        self,
        store: StateStore,
        gauge: VibrationGauge,
        knowledge: Knowledge,
        console: ConsoleLog,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._gauge = gauge
        self._knowledge = knowledge
        self._console = console
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Plumbing
    # ------------------------------------------------------------------ #
    def _fail(self, act: str, err: ActError) -> ActResult:
        self._console.log(f"[ERROR/{act.upper()}]: {err.message}", Severity.ERROR, act=act, error=err.to_dict())
        return ActResult(ok=False, act=act, message=err.message, error=err.kind, details=err.to_dict())

    def _commit(
        self,
        act: str,
        patch: Dict[str, Any],
        message: str,
        severity: Severity = Severity.AUDIT,
        **details: Any,
    ) -> ActResult:
        persist: Optional[PersistError] = self._store.apply(patch)
        if persist is not None and self._store.rollback_on_persist_failure:
            return self._fail(act, persist)

        self._console.log(message, severity, act=act, **details)
        # The act is already committed here; its vibration charge is best-effort.
        charge = self._gauge.add(ACT_COSTS[act])
        if charge is not None and self._store.rollback_on_persist_failure:
            self._console.log(
                f"[ERROR/{act.upper()}]: Vibration charge of {ACT_COSTS[act]:.2f} was not recorded: {charge.message}",
                Severity.ERROR,
                act=act,
                charged=False,
            )
        failure = persist or charge
        return ActResult(
            ok=True,
            act=act,
            message=message,
            performed=True,
            persist_error=failure.message if failure else None,
            details=details,
        )

    # ------------------------------------------------------------------ #
    # System control
    # ------------------------------------------------------------------ #
    def halt(self) -> ActResult:
        if self._store.current().is_halted:
            message = "[AUDIT/HALT]: The logos core is already halted."
            self._console.log(message, Severity.ERROR)
            return ActResult(ok=True, act="halt", message=message)
        return self._commit(
            "halt",
            {"is_halted": True},
            "[SYSTEM ACT]: Logos core halted. All acts are blocked.",
        )

    def restart(self) -> ActResult:
        if not self._store.current().is_halted:
            message = "[AUDIT/RESTART]: The logos core is already operational."
            self._console.log(message, Severity.SYSTEM)
            return ActResult(ok=True, act="restart", message=message)
        return self._commit(
            "restart",
            {"is_halted": False},
            "[SYSTEM ACT]: Logos core restarted. Acts are resumed.",
            Severity.SYSTEM,
        )

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #
    def create_account(self, account_id: str, name: str = "") -> ActResult:
        state = self._store.current()
        account_id = (account_id or "").strip()
        name = (name or "").strip()
        try:
            if not account_id:
                raise ActError(ErrorKind.INVALID_ACCOUNT_ID, "Account id is empty.")
            if state.find_account(account_id) is not None:
                raise ActError(
                    ErrorKind.DUPLICATE_ACCOUNT_ID,
                    f"Account id {account_id} already exists.",
                    account_id=account_id,
                )
            if state.is_halted:
                raise ActError(ErrorKind.SYSTEM_HALTED, "The logos core is halted; accounts cannot be created.")
        except ActError as e:
            return self._fail("create_account", e)

        account = Account(
            id=account_id,
            name=name or f"Audit account {account_id}",
            balances={code: 0.0 for code in self._knowledge.currency_codes},
        )
        return self._commit(
            "create_account",
            {"accounts": state.accounts + [account]},
            f"[AUDIT/CREATE]: Created audit account **{account_id} ({name or 'N/A'})**.",
            account_id=account_id,
        )

    # ------------------------------------------------------------------ #
    # Currency acts
    # ------------------------------------------------------------------ #
    def transfer(self, sender_id: str, recipient_id: str, amount: float, currency: str) -> ActResult:
        state = self._store.current()
        try:
            args = validate(sender_id, recipient_id, amount, currency, state, self._knowledge)
        except ActError as e:
            return self._fail("transfer", e)

        accounts = []
        for acc in state.accounts:
            if acc.id == sender_id:
                acc = acc.with_balances(**{currency: acc.balance(currency) - args.amount})
            if acc.id == recipient_id:
                acc = acc.with_balances(**{currency: acc.balance(currency) + args.amount})
            accounts.append(acc)

        return self._commit(
            "transfer",
            {"accounts": accounts},
            f"[AUDIT/TRANSFER]: **{sender_id}** -> **{recipient_id}**: {args.amount:.2f} {currency} transferred.",
            sender=sender_id,
            recipient=recipient_id,
            amount=args.amount,
            currency=currency,
        )

    def mint(self, recipient_id: str, amount: float, currency: str) -> ActResult:
        state = self._store.current()
        try:
            args = validate(None, recipient_id, amount, currency, state, self._knowledge, is_mint=True)
            if args.recipient is None:
                raise ActError(ErrorKind.ACCOUNT_NOT_FOUND, "Mint requires a recipient account.")
        except ActError as e:
            return self._fail("mint", e)

        accounts = [
            acc.with_balances(**{currency: acc.balance(currency) + args.amount}) if acc.id == recipient_id else acc
            for acc in state.accounts
        ]
        return self._commit(
            "mint",
            {"accounts": accounts},
            f"[AUDIT/MINT]: {args.amount:.2f} {currency} newly **minted** into account **{recipient_id}**.",
            recipient=recipient_id,
            amount=args.amount,
            currency=currency,
        )

    def exchange(self, account_id: str, amount: float, from_currency: str, to_currency: str) -> ActResult:
        state = self._store.current()
        try:
            args = validate(account_id, account_id, amount, from_currency, state, self._knowledge)
            if from_currency == to_currency:
                raise ActError(ErrorKind.SAME_CURRENCY, "Source and target currency are the same.")
            rate_from = state.currency_rates.get(from_currency, 0.0)
            rate_to = state.currency_rates.get(to_currency, 0.0)
            if not self._knowledge.is_currency(to_currency) or rate_to <= 0:
                raise ActError(ErrorKind.UNKNOWN_CURRENCY, "Target currency is invalid.", currency=to_currency)
            if rate_from <= 0:
                raise ActError(ErrorKind.UNKNOWN_CURRENCY, "Source currency has no rate.", currency=from_currency)
        except ActError as e:
            return self._fail("exchange", e)

        rate = rate_to / rate_from
        received = args.amount * rate
        accounts = [
            acc.with_balances(**{
                from_currency: acc.balance(from_currency) - args.amount,
                to_currency: acc.balance(to_currency) + received,
            })
            if acc.id == account_id else acc
            for acc in state.accounts
        ]
        return self._commit(
            "exchange",
            {"accounts": accounts},
            f"[AUDIT/EXCHANGE]: **{account_id}** exchanged {args.amount:.2f} {from_currency} "
            f"for {received:.2f} {to_currency} (rate {rate:.4f}).",
            account_id=account_id,
            amount=args.amount,
            received=received,
            rate=rate,
            from_currency=from_currency,
            to_currency=to_currency,
        )

    # ------------------------------------------------------------------ #
    # Infrastructure
    # ------------------------------------------------------------------ #
    def adjust_infrastructure_supply(self, kind: str, amount: float) -> ActResult:
        try:
            target_key = INFRA_KEYS.get(kind)
            if target_key is None:
                raise ActError(ErrorKind.UNKNOWN_INFRASTRUCTURE, f"Unknown infrastructure {kind!r}.", kind=kind)
            if (
                isinstance(amount, bool)
                or not isinstance(amount, (int, float))
                or math.isnan(amount)
                or not INFRA_MIN <= amount <= INFRA_MAX
            ):
                raise ActError(ErrorKind.INVALID_AMOUNT, "Enter a valid supply level (0-100%).", amount=str(amount))
        except ActError as e:
            return self._fail("infrastructure", e)

        state = self._store.current()
        infrastructure = dict(state.infrastructure)
        infrastructure[target_key] = InfraEntry(value=float(amount), last_change=self._clock())
        return self._commit(
            "infrastructure",
            {"infrastructure": infrastructure},
            f"[INFRA ACT]: **{INFRA_LABELS[kind]}** logical supply set to **{float(amount):.1f}%**. "
            f"Vibration +{ACT_COSTS['infrastructure']:.2f}.",
            Severity.SYSTEM,
            kind=kind,
            key=target_key,
            value=float(amount),
        )

    # ------------------------------------------------------------------ #
    # Vibration control
    # ------------------------------------------------------------------ #
    def reset_vibration(self) -> ActResult:
        persist = self._gauge.reset()
        message = "[SYSTEM ACT]: Activity level (V) forcibly reset to 0.0."
        self._console.log(message, Severity.SYSTEM)
        return ActResult(
            ok=True,
            act="reset_vibration",
            message=message,
            performed=True,
            persist_error=persist.message if persist else None,
        )
