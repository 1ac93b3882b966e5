"""HTTP surface of the hosted agents: health, agent listing, buffered and streaming invoke."""

from __future__ import annotations

import os

from fastapi import APIRouter, FastAPI

from agent_bridge_contracts.api_version import AGENT_NAMES_VERSION, API_VERSION

from .api.v1.agents import router as agents_router
from .api.v1.invoke import router as invoke_router
from .logging_config import configure_logging
from .services.settings.env import load_env


def create_app() -> FastAPI:
    api = FastAPI(title="Agent Bridge API", version=API_VERSION)

    v1 = APIRouter(prefix="/api/v1")

    @v1.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "api_version": API_VERSION, "agent_names_version": AGENT_NAMES_VERSION}

    for router in (agents_router, invoke_router):
        v1.include_router(router)
    api.include_router(v1)
    return api


# Env files must be loaded before any settings are read.
load_env()
configure_logging()

app = create_app()


def run() -> None:
    """`agent-bridge-api`: serve the app with uvicorn. Lambda deployments use `lambda_handler` instead."""

    import uvicorn

    uvicorn.run(
        "agent_bridge.main:app",
        host=os.getenv("AGENT_BRIDGE_HOST", "127.0.0.1"),
        port=int(os.getenv("AGENT_BRIDGE_PORT", "8000")),
        log_config=None,
    )
