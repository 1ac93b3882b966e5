"""Coordinating agent network.

The network owns memory for its own namespaced thread. Selected members answer
statelessly from that history, and their answers are aggregated into one
section per member. Buffered calls fan out concurrently; streaming relays
members one after another.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Mapping, Sequence

from agent_bridge_contracts.agent import DEFAULT_AGENT, AgentName
from agent_bridge_contracts.session import SessionContext

from ..memory import MessageRole, ThreadStore, create_thread_store
from ..routing.network_router import NetworkRoute, select_members
from .base import AgentDispatchError, BuildContext, ensure_context_for
from .conversational import ConversationalAgent, read_prompt, recall_history, remember
from .registry_models import AgentRegistryEntry

logger = logging.getLogger(__name__)


def _section_heading(member: AgentName, index: int) -> str:
    prefix = "" if index == 0 else "\n\n"
    return f"{prefix}## {member.value}\n"


class AgentNetwork:
    def __init__(
        self,
        agent_name: AgentName,
        instructions: str,
        members: Mapping[AgentName, ConversationalAgent],
        member_entries: Sequence[AgentRegistryEntry],
        memory: ThreadStore,
        *,
        fallback: AgentName = DEFAULT_AGENT,
        max_members: int = 2,
        history_limit: int = 42,
    ) -> None:
        if fallback not in members:
            raise AgentDispatchError("build_error", f"network fallback {fallback.value} is not a member")
        self.agent_name = agent_name
        self.instructions = instructions
        self.members = dict(members)
        self.member_entries = list(member_entries)
        self.memory = memory
        self.fallback = fallback
        self.max_members = max_members
        self.history_limit = history_limit

    def route(self, query: str) -> NetworkRoute:
        route = select_members(
            query, self.member_entries, fallback=self.fallback, max_members=self.max_members
        )
        logger.info("network.route agent=%s members=%s", self.agent_name.value, [m.value for m in route.members])
        return route

    async def generate(self, query: str, context: SessionContext) -> str:
        ensure_context_for(self.agent_name, context)
        history = await recall_history(self.memory, context, self.history_limit)
        route = self.route(query)
        await remember(self.memory, context, MessageRole.user, query)

        answers = await asyncio.gather(*(self.members[m].respond(query, history) for m in route.members))
        text = "".join(
            _section_heading(member, i) + answer for i, (member, answer) in enumerate(zip(route.members, answers))
        )

        await remember(self.memory, context, MessageRole.assistant, text)
        return text

    async def stream(self, query: str, context: SessionContext) -> AsyncIterator[str]:
        ensure_context_for(self.agent_name, context)
        history = await recall_history(self.memory, context, self.history_limit)
        route = self.route(query)
        await remember(self.memory, context, MessageRole.user, query)

        parts: list[str] = []
        for i, member in enumerate(route.members):
            heading = _section_heading(member, i)
            parts.append(heading)
            yield heading
            async for fragment in self.members[member].respond_stream(query, history):
                parts.append(fragment)
                yield fragment

        await remember(self.memory, context, MessageRole.assistant, "".join(parts))


def build_network(entry: AgentRegistryEntry, ctx: BuildContext) -> AgentNetwork:
    """Registry factory for `kind: network` entries; members must already be built."""

    members: dict[AgentName, ConversationalAgent] = {}
    for name in entry.members:
        target = ctx.built.get(name)
        if not isinstance(target, ConversationalAgent):
            raise AgentDispatchError(
                "build_error", f"network {entry.agent_name.value} member {name.value} is not a built agent"
            )
        members[name] = target

    return AgentNetwork(
        entry.agent_name,
        read_prompt(entry.prompt) if entry.prompt else f"# {entry.agent_name.value}",
        members,
        [ctx.entries[name] for name in entry.members],
        create_thread_store(entry.agent_name, ctx.settings),
        fallback=entry.fallback or DEFAULT_AGENT,
        max_members=ctx.settings.max_network_members,
        history_limit=ctx.settings.history_limit,
    )
