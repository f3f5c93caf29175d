#!/usr/bin/env python3
"""
Audit Ledger Integrity Guardian

Read-only scan of a SystemState snapshot. Detects:
- duplicate account ids
- negative or non-finite balances
- vibration outside [0, 2 x limit]
- non-positive or non-finite currency rates
- infrastructure values outside [0, 100]

Used by the state report; it never modifies state, only reports.
"""

import math
from typing import Any, Dict, List

from core.constants import INFRA_MAX, INFRA_MIN, VIBRATION_CEILING
from ledger.state import SystemState


def is_number(x: Any) -> bool:
    try:
        v = float(x)
        return not math.isnan(v) and not math.isinf(v)
    except (TypeError, ValueError):
        return False


def analyze_state(state: SystemState) -> Dict[str, Any]:
    summary = {
        "accounts_scanned": 0,
        "duplicate_ids": 0,
        "negative_balances": 0,
        "bad_rates": 0,
        "bad_infrastructure": 0,
        "vibration_out_of_range": 0,
    }
    errors: List[str] = []
    seen_ids: set = set()

    for acc in state.accounts:
        summary["accounts_scanned"] += 1
        if acc.id in seen_ids:
            summary["duplicate_ids"] += 1
            errors.append(f"- duplicate account id `{acc.id}`")
        seen_ids.add(acc.id)
        for cur, amt in sorted(acc.balances.items()):
            if not is_number(amt) or amt < 0:
                summary["negative_balances"] += 1
                errors.append(f"- `{acc.id}` holds invalid {cur} balance {amt!r}")

    value = state.vibration_level.value
    if not is_number(value) or not 0 <= value <= VIBRATION_CEILING:
        summary["vibration_out_of_range"] += 1
        errors.append(f"- vibration {value!r} outside [0, {VIBRATION_CEILING:.0f}]")

    for cur, rate in sorted(state.currency_rates.items()):
        if not is_number(rate) or rate <= 0:
            summary["bad_rates"] += 1
            errors.append(f"- rate for {cur} is {rate!r}")

    for key, entry in sorted(state.infrastructure.items()):
        if not is_number(entry.value) or not INFRA_MIN <= entry.value <= INFRA_MAX:
            summary["bad_infrastructure"] += 1
            errors.append(f"- infrastructure `{key}` at {entry.value!r}")

    return {"summary": summary, "errors": errors, "ok": not errors}
