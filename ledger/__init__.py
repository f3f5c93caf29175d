"""
Audit Ledger Package

Provides the state-transition core of the audit protocol:
- state / state_store: typed system state and its single owner
- vibration: the decaying activity gauge
- validator / errors: act preconditions and the error taxonomy
- acts: the atomic ledger acts
- state_view: markdown snapshots of the current state
"""
