from __future__ import annotations

from conftest import make_state
from ledger.state_view import render_state_report, vibration_band, write_state_report


def test_vibration_bands():
    assert vibration_band(0) == "green"
    assert vibration_band(50) == "yellow"
    assert vibration_band(100) == "red"


def test_report_contents():
    text = render_state_report(make_state(halted=True, vibration=60.0), generated_at="T")
    assert "System: **HALTED**" in text
    assert "60%, yellow" in text
    assert "| CORE_BANK_A | Central Bank A | 1,000.00 | 500.00 | 100.00 |" in text
    assert "- **ALPHA**: 1,050.00" in text
    assert "- **energy_supply**: 100.0%" in text


def test_write_report(tmp_path):
    path = write_state_report(make_state(), report_dir=tmp_path)
    assert path.parent == tmp_path
    assert path.read_text(encoding="utf-8").startswith("# Logos Audit State Snapshot")


def test_clean_state_has_no_issues():
    text = render_state_report(make_state(), generated_at="T")
    assert "- No integrity issues detected" in text


def test_integrity_flags_broken_state():
    from ledger.ledger_integrity import analyze_state
    from ledger.state import Account

    state = make_state(
        accounts=[
            Account(id="A", name="a", balances={"ALPHA": -1.0}),
            Account(id="A", name="dup", balances={"ALPHA": 1.0}),
        ],
        vibration=250.0,
        rates={"ALPHA": 0.0},
    )
    result = analyze_state(state)
    assert not result["ok"]
    s = result["summary"]
    assert (s["duplicate_ids"], s["negative_balances"], s["vibration_out_of_range"], s["bad_rates"]) == (1, 1, 1, 1)
