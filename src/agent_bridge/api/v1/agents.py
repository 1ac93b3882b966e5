"""Agent listing endpoint (v1)."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from agent_bridge_contracts.api_version import AGENT_NAMES_VERSION

from ...services.agents.registry import list_agents
from ...services.agents.registry_models import AgentKind


router = APIRouter(prefix="/agents", tags=["agents"])


class AgentSummary(BaseModel):
    agent_name: str
    name: str
    description: str
    kind: AgentKind
    enabled: bool


class AgentListResponse(BaseModel):
    agent_names_version: str
    agents: list[AgentSummary]


@router.get("", response_model=AgentListResponse)
def list_agents_endpoint() -> AgentListResponse:
    return AgentListResponse(
        agent_names_version=AGENT_NAMES_VERSION,
        agents=[
            AgentSummary(
                agent_name=e.agent_name.value,
                name=e.name,
                description=e.description,
                kind=e.kind,
                enabled=e.enabled,
            )
            for e in list_agents()
        ],
    )
