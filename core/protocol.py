"""
Audit Protocol wiring

Builds one fully connected protocol instance: a single StateStore injected
into the gauge, the acts, the rule engine and the dialogue layer. The API
builds one per process; tests build a fresh one per test.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from core.config import AuditConfig, anonymous_actor_id
from core.console import ConsoleLog
from core.knowledge import Knowledge, load_knowledge
from dialogue.dialogue_acts import DialogueEngine
from ledger.acts import LedgerActs
from ledger.state import SystemState, default_state
from ledger.state_store import StateStore
from ledger.vibration import VibrationGauge
from lil.engine import RuleEngine
from lil.rules import Rule, load_rules
from storage.document_store import DocumentStore, open_document_store

log = logging.getLogger(__name__)


@dataclass
class AuditProtocol:
    config: AuditConfig
    actor_id: str
    knowledge: Knowledge
    console: ConsoleLog
    store: StateStore
    gauge: VibrationGauge
    acts: LedgerActs
    rules: RuleEngine
    dialogue: DialogueEngine

    @property
    def display_id(self) -> str:
        return f"{self.config.app_id} / {self.actor_id}"

    def close(self) -> None:
        self.store.close()


def build_protocol(
    config: Optional[AuditConfig] = None,
    *,
    document_store: Optional[DocumentStore] = None,
    initial_state: Optional[SystemState] = None,
    knowledge: Optional[Knowledge] = None,
    rules: Optional[List[Rule]] = None,
    clock: Callable[[], float] = time.time,
) -> AuditProtocol:
    cfg = config or AuditConfig.from_env()
    knowledge = knowledge or load_knowledge(cfg.knowledge_path)
    rules = rules if rules is not None else load_rules(cfg.rules_path)
    documents = document_store or open_document_store(cfg.redis_url)
    console = ConsoleLog(clock=clock)

    store = StateStore(
        documents,
        cfg.state_key,
        initial_state or default_state(knowledge.currency_codes, clock()),
        rollback_on_persist_failure=cfg.rollback_on_persist_failure,
    )
    store.connect()

    gauge = VibrationGauge(store, clock=clock)
    acts = LedgerActs(store, gauge, knowledge, console, clock=clock)
    engine = RuleEngine(rules, console)
    dialogue = DialogueEngine(store, gauge, acts, knowledge, console)

    protocol = AuditProtocol(
        config=cfg,
        actor_id=anonymous_actor_id(),
        knowledge=knowledge,
        console=console,
        store=store,
        gauge=gauge,
        acts=acts,
        rules=engine,
        dialogue=dialogue,
    )
    log.info("[AuditProtocol] %s ready (storage=%s, rules=%d)", protocol.display_id, store.backend, len(rules))
    return protocol
