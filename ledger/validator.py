"""
Act validation

Shared precondition checks for the economic acts. `validate` is pure: it
reads the given state snapshot and either returns the resolved arguments or
raises ActError for the first failing check, in this order:

1. core halted
2. vibration at or above the limit
3. amount not a positive finite number
4. currency not in the knowledge base
5. sender missing (skipped for mint)
6. recipient missing (when one is named)
7. sender balance below amount (skipped for mint)
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Optional

from core.constants import VIBRATION_LIMIT
from core.knowledge import Knowledge
from ledger.errors import ActError, ErrorKind
from ledger.state import Account, SystemState


@dataclass(frozen=True)
class ValidatedArgs:
    sender: Optional[Account]
    recipient: Optional[Account]
    amount: float
    currency: str


def is_valid_amount(x: Any) -> bool:
    if isinstance(x, bool):
        return False
    try:
        v = float(x)
    except (TypeError, ValueError):
        return False
    return not math.isnan(v) and not math.isinf(v) and v > 0


def validate(
    sender_id: Optional[str],
    recipient_id: Optional[str],
    amount: Any,
    currency: str,
    state: SystemState,
    knowledge: Knowledge,
    is_mint: bool = False,
) -> ValidatedArgs:
    if state.is_halted:
        raise ActError(ErrorKind.SYSTEM_HALTED, "The logos core is halted.")
    if state.vibration_level.value >= VIBRATION_LIMIT:
        raise ActError(
            ErrorKind.VIBRATION_EXCEEDED,
            "Vibration has reached the limit.",
            vibration=state.vibration_level.value,
        )
    if not is_valid_amount(amount):
        raise ActError(ErrorKind.INVALID_AMOUNT, "Amount is invalid.", amount=str(amount))
    if not knowledge.is_currency(currency):
        raise ActError(ErrorKind.UNKNOWN_CURRENCY, "Currency is invalid.", currency=currency)

    sender = state.find_account(sender_id)
    recipient = state.find_account(recipient_id)

    if not is_mint and sender is None:
        raise ActError(
            ErrorKind.ACCOUNT_NOT_FOUND,
            f"Sender account {sender_id} does not exist.",
            account_id=sender_id,
        )
    if recipient_id and recipient is None:
        raise ActError(
            ErrorKind.ACCOUNT_NOT_FOUND,
            f"Recipient account {recipient_id} does not exist.",
            account_id=recipient_id,
        )

    amount = float(amount)
    if not is_mint and sender.balance(currency) < amount:
        raise ActError(
            ErrorKind.INSUFFICIENT_BALANCE,
            f"{sender_id} has insufficient {currency} balance.",
            account_id=sender_id,
            balance=sender.balance(currency),
            amount=amount,
        )

    return ValidatedArgs(sender=sender, recipient=recipient, amount=amount, currency=currency)
