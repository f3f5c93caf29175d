"""
Logos Audit Protocol constants

Fixed numbers of the reference configuration. These are not read from the
environment: changing them changes the protocol, not the deployment.
"""

from __future__ import annotations
from typing import Dict

# Soft gate used by validation; the gauge itself is clamped at twice this.
VIBRATION_LIMIT = 100.0
VIBRATION_CEILING = VIBRATION_LIMIT * 2

DECAY_RATE = 0.5                # per second
DECAY_MIN_ELAPSED = 1.0         # seconds between effective decays
DECAY_PERSIST_THRESHOLD = 1.0   # smaller changes stay local
DECAY_INTERVAL_SECONDS = 1.0

INFRA_MIN = 0.0
INFRA_MAX = 100.0

# Act costs, charged to the gauge only on success.
ACT_COSTS: Dict[str, float] = {
    "halt": 5.0,
    "restart": 5.0,
    "create_account": 1.0,
    "transfer": 2.0,
    "mint": 3.0,
    "exchange": 1.0,
    "infrastructure": 1.0,
    "dialogue": 0.5,
}

# Infrastructure kind -> persisted key.
INFRA_KEYS: Dict[str, str] = {
    "ENERGY": "energy_supply",
    "NET": "net_stability",
}

INFRA_LABELS: Dict[str, str] = {
    "ENERGY": "Energy supply (ENERGY)",
    "NET": "Network stability (NET)",
}

DEFAULT_APP_ID = "MSGAI-Z"
STATE_COLLECTION = "system_state"
