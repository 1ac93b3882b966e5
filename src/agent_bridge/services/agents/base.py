from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Protocol, runtime_checkable

from agent_bridge_contracts.agent import AgentName
from agent_bridge_contracts.session import SessionContext

from ..settings.config import BridgeSettings
from .registry_models import AgentRegistryEntry


@dataclass
class AgentDispatchError(RuntimeError):
    code: str
    message: str = ""

    def __post_init__(self) -> None:
        # Ensure the base RuntimeError args contains the message for standard error behavior.
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}".strip()


@runtime_checkable
class InvokableTarget(Protocol):
    """Stable interface for everything the directory can dispatch to.

    Implementations are built from the declarative registry in
    `service_directory/agents.json` by
    `agent_bridge.services.agents.directory.build_directory`. Single agents and
    coordinating networks expose the same buffered and streaming surface.
    """

    agent_name: AgentName

    async def generate(self, query: str, context: SessionContext) -> str:
        ...

    def stream(self, query: str, context: SessionContext) -> AsyncIterator[str]:
        ...


def ensure_context_for(agent_name: AgentName, context: SessionContext) -> None:
    """Reject a context that was not derived for `agent_name`."""

    if context.agent_name is not agent_name:
        raise AgentDispatchError(
            "contract_violation",
            f"context for {context.agent_name.value} dispatched to {agent_name.value}",
        )


@dataclass(frozen=True)
class BuildContext:
    """What a registry factory sees while the directory is being built."""

    settings: BridgeSettings
    entries: Mapping[AgentName, AgentRegistryEntry]
    built: Mapping[AgentName, InvokableTarget]
