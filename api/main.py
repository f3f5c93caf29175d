"""
Audit Protocol API

HTTP adapter around one AuditProtocol instance:
- parses raw request input into typed act arguments (pydantic)
- exposes state, console tail and the LIL rule table
- runs the vibration decay ticker on the event loop

All endpoints are async so acts and decay ticks share one thread.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes_acts import router as acts_router
from core.config import AuditConfig, configure_logging
from core.protocol import AuditProtocol, build_protocol
from ledger.vibration import DecayTicker


def create_app(protocol: Optional[AuditProtocol] = None) -> FastAPI:
    cfg = protocol.config if protocol is not None else AuditConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.log_level)
        proto = protocol or build_protocol(cfg)
        app.state.protocol = proto
        ticker = DecayTicker(proto.gauge)
        if cfg.decay_tick:
            ticker.start()
        try:
            yield
        finally:
            await ticker.stop()
            if protocol is None:
                proto.close()

    app = FastAPI(
        title="Logos-Audit-API",
        version="0.9.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(acts_router)
    return app


app = create_app()
