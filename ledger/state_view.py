#!/usr/bin/env python3
"""
Audit State View

Entry point for:
- Rendering the current protocol state as markdown (halt indicator,
  vibration meter, balances, supply, infrastructure)
- Writing a daily snapshot under:
    reports/state/state_snapshot_YYYY-MM-DD.md
"""

from __future__ import annotations
import datetime as _dt
from pathlib import Path
from typing import Dict, List, Optional

from core.constants import VIBRATION_LIMIT
from ledger.ledger_integrity import analyze_state
from ledger.state import SystemState

ROOT = Path(__file__).resolve().parents[1]
REPORT_DIR = ROOT / "reports" / "state"


def vibration_band(value: float) -> str:
    if value >= VIBRATION_LIMIT:
        return "red"
    if value >= VIBRATION_LIMIT * 0.5:
        return "yellow"
    return "green"


def vibration_percent(value: float) -> float:
    return min(100.0, value / VIBRATION_LIMIT * 100.0)


def summarize_supply_md(supply: Dict[str, float]) -> List[str]:
    lines: List[str] = []
    if not supply:
        lines.append("No balances recorded yet.")
        return lines
    for currency, total in sorted(supply.items()):
        lines.append(f"- **{currency}**: {total:,.2f}")
    return lines


def render_state_report(state: SystemState, generated_at: Optional[str] = None) -> str:
    ts = generated_at or _dt.datetime.now(_dt.timezone.utc).isoformat()
    value = state.vibration_level.value
    currencies = sorted({c for acc in state.accounts for c in acc.balances})

    lines = [
        "# Logos Audit State Snapshot",
        "",
        f"- Generated at: `{ts}`",
        f"- System: **{'HALTED' if state.is_halted else 'OPERATIONAL'}**",
        f"- Vibration: `{value:.2f}` / {VIBRATION_LIMIT:.0f} "
        f"({vibration_percent(value):.0f}%, {vibration_band(value)})",
        "",
        "## Balances by Account",
        "",
    ]
    if state.accounts:
        lines.append("| id | name | " + " | ".join(currencies) + " |")
        lines.append("|---|---|" + "---|" * len(currencies))
        for acc in state.accounts:
            cells = " | ".join(f"{acc.balance(c):,.2f}" for c in currencies)
            lines.append(f"| {acc.id} | {acc.name} | {cells} |")
    else:
        lines.append("_No accounts yet._")
    lines.append("")

    lines.append("## Total Supply")
    lines.append("")
    lines.extend(summarize_supply_md(state.supply()))
    lines.append("")

    lines.append("## Infrastructure")
    lines.append("")
    if state.infrastructure:
        for key, entry in sorted(state.infrastructure.items()):
            lines.append(f"- **{key}**: {entry.value:.1f}%")
    else:
        lines.append("_No infrastructure entries._")
    lines.append("")

    lines.append("## Detected Issues")
    integrity = analyze_state(state)
    if integrity["errors"]:
        lines.extend(integrity["errors"])
    else:
        lines.append("- No integrity issues detected")
    lines.append("")
    return "\n".join(lines)


def write_state_report(state: SystemState, report_dir: Path = REPORT_DIR) -> Path:
    report_dir.mkdir(parents=True, exist_ok=True)
    today = _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%d")
    path = report_dir / f"state_snapshot_{today}.md"
    path.write_text(render_state_report(state) + "\n", encoding="utf-8")
    return path


def main() -> None:
    from core.config import AuditConfig, configure_logging
    from core.protocol import build_protocol

    cfg = AuditConfig.from_env()
    configure_logging(cfg.log_level)
    protocol = build_protocol(cfg)
    try:
        path = write_state_report(protocol.store.current())
    finally:
        protocol.close()
    print(f"[state_view] Wrote state snapshot to: {path}")


if __name__ == "__main__":
    main()
