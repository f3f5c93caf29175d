"""
Audit Protocol configuration

Deployment settings come from the environment (same convention as the
service: server env is the source of truth). Static tables such as the
knowledge base and the LIL rule set are YAML files whose paths can be
overridden here.
"""

from __future__ import annotations
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.constants import DEFAULT_APP_ID, STATE_COLLECTION

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_KNOWLEDGE_PATH = ROOT / "core" / "knowledge.yaml"
DEFAULT_RULES_PATH = ROOT / "lil" / "rules.yaml"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_yaml(path: Path) -> Dict[str, Any]:
    import yaml
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


@dataclass
class AuditConfig:
    app_id: str = DEFAULT_APP_ID
    env_name: str = "prod"
    redis_url: str = ""
    allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    rollback_on_persist_failure: bool = False
    decay_tick: bool = True
    knowledge_path: Path = DEFAULT_KNOWLEDGE_PATH
    rules_path: Path = DEFAULT_RULES_PATH

    @property
    def state_key(self) -> str:
        return f"{STATE_COLLECTION}:{self.app_id}"

    @classmethod
    def from_env(cls) -> "AuditConfig":
        origins = os.getenv("ALLOW_ORIGINS", "*")
        return cls(
            app_id=os.getenv("AUDIT_APP_ID", DEFAULT_APP_ID).strip() or DEFAULT_APP_ID,
            env_name=os.getenv("ENV_NAME", "prod"),
            redis_url=os.getenv("REDIS_URL", "").strip(),
            allow_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            rollback_on_persist_failure=_env_bool("AUDIT_ROLLBACK_ON_PERSIST_FAILURE"),
            decay_tick=_env_bool("AUDIT_DECAY_TICK", True),
            knowledge_path=Path(os.getenv("AUDIT_KNOWLEDGE_PATH") or DEFAULT_KNOWLEDGE_PATH),
            rules_path=Path(os.getenv("AUDIT_RULES_PATH") or DEFAULT_RULES_PATH),
        )


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def anonymous_actor_id() -> str:
    """Opaque id for the current actor. Display only, never used for authorization."""
    return uuid.uuid4().hex[:8]
