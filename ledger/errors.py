"""
Ledger error taxonomy

Validation failures are raised as ActError inside the core and turned into
a failed ActResult at the act boundary. PersistError wraps collaborator
failures; it is reported, never raised past the StateStore.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    SYSTEM_HALTED = "SystemHalted"
    VIBRATION_EXCEEDED = "VibrationExceeded"
    INVALID_AMOUNT = "InvalidAmount"
    UNKNOWN_CURRENCY = "UnknownCurrency"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    SAME_CURRENCY = "SameCurrency"
    DUPLICATE_ACCOUNT_ID = "DuplicateAccountId"
    INVALID_ACCOUNT_ID = "InvalidAccountId"
    UNKNOWN_INFRASTRUCTURE = "UnknownInfrastructure"
    PERSIST_ERROR = "PersistError"


class ActError(Exception):
    def __init__(self, kind: ErrorKind, message: str, **details: Any) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.details}


class PersistError(ActError):
    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(ErrorKind.PERSIST_ERROR, message)
        self.cause = cause
