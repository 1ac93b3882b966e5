"""Single conversational agent: instructions + LLM + per-thread memory."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator

from agent_bridge_contracts.agent import AgentName
from agent_bridge_contracts.session import SessionContext

from ..llm.client import ChatMessage, agenerate, astream
from ..memory import MessageRole, ThreadStore, create_thread_store
from .base import BuildContext, ensure_context_for
from .registry_models import AgentRegistryEntry

logger = logging.getLogger(__name__)


def read_prompt(filename: str) -> str:
    path = Path(__file__).resolve().parent / "prompts" / filename
    return path.read_text(encoding="utf-8")


async def recall_history(memory: ThreadStore, context: SessionContext, limit: int) -> list[ChatMessage]:
    """Ensure the thread exists and return its newest `limit` messages, oldest first.

    Store calls may block (file or network I/O), so they run in a worker thread.
    """

    def _load() -> list[ChatMessage]:
        memory.get_or_create_thread(context.thread_id, context.resource_id)
        return [
            {"role": m.role.value, "content": m.content}
            for m in memory.list_messages(context.thread_id, limit=limit)
        ]

    return await asyncio.to_thread(_load)


async def remember(memory: ThreadStore, context: SessionContext, role: MessageRole, content: str) -> None:
    await asyncio.to_thread(memory.append_message, context.thread_id, context.resource_id, role, content)


class ConversationalAgent:
    def __init__(
        self,
        agent_name: AgentName,
        instructions: str,
        memory: ThreadStore,
        *,
        model: str | None = None,
        history_limit: int = 42,
        temperature: float = 0.0,
    ) -> None:
        self.agent_name = agent_name
        self.instructions = instructions
        self.memory = memory
        self.model = model
        self.history_limit = history_limit
        self.temperature = temperature

    async def recall(self, context: SessionContext) -> list[ChatMessage]:
        return await recall_history(self.memory, context, self.history_limit)

    async def respond(self, query: str, history: list[ChatMessage]) -> str:
        """Stateless completion over a caller-supplied history."""

        return await agenerate(
            self.instructions,
            [*history, {"role": "user", "content": query}],
            model=self.model,
            temperature=self.temperature,
        )

    def respond_stream(self, query: str, history: list[ChatMessage]) -> AsyncIterator[str]:
        return astream(
            self.instructions,
            [*history, {"role": "user", "content": query}],
            model=self.model,
            temperature=self.temperature,
        )

    async def generate(self, query: str, context: SessionContext) -> str:
        ensure_context_for(self.agent_name, context)
        history = await self.recall(context)
        await remember(self.memory, context, MessageRole.user, query)

        text = await self.respond(query, history)

        await remember(self.memory, context, MessageRole.assistant, text)
        logger.info(
            "agent.generate end agent=%s thread_id=%s recalled=%s output_chars=%s",
            self.agent_name.value,
            context.thread_id,
            len(history),
            len(text),
        )
        return text

    async def stream(self, query: str, context: SessionContext) -> AsyncIterator[str]:
        ensure_context_for(self.agent_name, context)
        history = await self.recall(context)
        await remember(self.memory, context, MessageRole.user, query)

        parts: list[str] = []
        async for fragment in self.respond_stream(query, history):
            parts.append(fragment)
            yield fragment

        # Only a completed stream is remembered as the assistant turn.
        text = "".join(parts)
        await remember(self.memory, context, MessageRole.assistant, text)
        logger.info(
            "agent.stream end agent=%s thread_id=%s recalled=%s output_chars=%s",
            self.agent_name.value,
            context.thread_id,
            len(history),
            len(text),
        )


def build_agent(entry: AgentRegistryEntry, ctx: BuildContext) -> ConversationalAgent:
    """Registry factory for `kind: agent` entries."""

    settings = ctx.settings
    instructions = read_prompt(entry.prompt) if entry.prompt else f"# {entry.agent_name.value}\n\n{entry.description}"
    return ConversationalAgent(
        entry.agent_name,
        instructions,
        create_thread_store(entry.agent_name, settings),
        model=settings.model_for(entry.agent_name),
        history_limit=settings.history_limit,
    )
