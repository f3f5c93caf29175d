# api/routes_acts.py
from __future__ import annotations
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from core.protocol import AuditProtocol
from ledger.acts import ActResult
from ledger.errors import ErrorKind
from ledger.state_view import vibration_band, vibration_percent

router = APIRouter(prefix="/v1", tags=["audit"])

STATUS_BY_ERROR = {
    ErrorKind.SYSTEM_HALTED: 409,
    ErrorKind.VIBRATION_EXCEEDED: 409,
    ErrorKind.INSUFFICIENT_BALANCE: 409,
    ErrorKind.DUPLICATE_ACCOUNT_ID: 409,
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
    ErrorKind.INVALID_AMOUNT: 422,
    ErrorKind.UNKNOWN_CURRENCY: 422,
    ErrorKind.SAME_CURRENCY: 422,
    ErrorKind.INVALID_ACCOUNT_ID: 422,
    ErrorKind.UNKNOWN_INFRASTRUCTURE: 422,
    ErrorKind.PERSIST_ERROR: 503,
}


def get_protocol(request: Request) -> AuditProtocol:
    return request.app.state.protocol


def respond(result: ActResult):
    if not result.ok:
        raise HTTPException(status_code=STATUS_BY_ERROR.get(result.error, 400), detail=result.to_dict())
    return result.to_dict()


# ---------------------------
# Models
# ---------------------------
class CreateAccountBody(BaseModel):
    id: str
    name: str = ""


class TransferBody(BaseModel):
    sender: str
    recipient: str
    amount: float
    currency: str


class MintBody(BaseModel):
    recipient: str
    amount: float
    currency: str


class ExchangeBody(BaseModel):
    account_id: str
    amount: float
    from_currency: str
    to_currency: str


class InfrastructureBody(BaseModel):
    kind: Literal["ENERGY", "NET"]
    amount: float


class DialogueBody(BaseModel):
    prompt: str = Field(max_length=2000)


# ---------------------------
# Health / State
# ---------------------------
@router.get("/ops/health")
async def health(protocol: AuditProtocol = Depends(get_protocol)):
    return {
        "ok": True,
        "env": protocol.config.env_name,
        "app": protocol.display_id,
        "storage": protocol.store.backend,
        "redis_url_set": bool(protocol.config.redis_url),
    }


@router.get("/state")
async def get_state(protocol: AuditProtocol = Depends(get_protocol)):
    state = protocol.store.current()
    value = state.vibration_level.value
    return {
        "ok": True,
        "state": state.to_document(),
        "indicator": "HALTED" if state.is_halted else "OPERATIONAL",
        "vibration": {"value": value, "percent": vibration_percent(value), "band": vibration_band(value)},
    }


@router.get("/state/supply")
async def get_supply(protocol: AuditProtocol = Depends(get_protocol)):
    return {"ok": True, "supply": protocol.store.current().supply()}


@router.get("/console")
async def get_console(limit: int = 50, protocol: AuditProtocol = Depends(get_protocol)):
    limit = max(1, min(limit, 200))
    return {"ok": True, "items": [e.to_dict() for e in protocol.console.tail(limit)]}


# ---------------------------
# Acts
# ---------------------------
@router.post("/acts/halt")
async def act_halt(protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.halt())


@router.post("/acts/restart")
async def act_restart(protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.restart())


@router.post("/acts/accounts")
async def act_create_account(body: CreateAccountBody, protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.create_account(body.id, body.name))


@router.post("/acts/transfer")
async def act_transfer(body: TransferBody, protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.transfer(body.sender.strip(), body.recipient.strip(), body.amount, body.currency))


@router.post("/acts/mint")
async def act_mint(body: MintBody, protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.mint(body.recipient.strip(), body.amount, body.currency))


@router.post("/acts/exchange")
async def act_exchange(body: ExchangeBody, protocol: AuditProtocol = Depends(get_protocol)):
    return respond(
        protocol.acts.exchange(body.account_id.strip(), body.amount, body.from_currency, body.to_currency)
    )


@router.post("/acts/infrastructure")
async def act_infrastructure(body: InfrastructureBody, protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.adjust_infrastructure_supply(body.kind, body.amount))


@router.post("/acts/vibration/reset")
async def act_reset_vibration(protocol: AuditProtocol = Depends(get_protocol)):
    return respond(protocol.acts.reset_vibration())


# ---------------------------
# LIL / Dialogue
# ---------------------------
@router.get("/lil/rules")
async def lil_rules(protocol: AuditProtocol = Depends(get_protocol)):
    return {"ok": True, "rules": [r.model_dump() for r in protocol.rules.rules]}


@router.post("/lil/evaluate")
async def lil_evaluate(protocol: AuditProtocol = Depends(get_protocol)):
    firings = protocol.rules.evaluate(protocol.store.current())
    return {"ok": True, "fired": [f.to_dict() for f in firings]}


@router.post("/dialogue")
async def dialogue(body: DialogueBody, protocol: AuditProtocol = Depends(get_protocol)):
    reply = protocol.dialogue.handle(body.prompt)
    return reply.to_dict()
