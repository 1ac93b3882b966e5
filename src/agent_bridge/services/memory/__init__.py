"""Conversation memory backends keyed by namespaced thread id."""

from __future__ import annotations

from agent_bridge_contracts.agent import AgentName

from ..settings.config import BridgeSettings
from .dynamodb_store import DynamoThreadStore
from .file_store import FileThreadStore
from .interface import MemoryStoreError, MessageRole, Thread, ThreadMessage, ThreadStore


def create_thread_store(agent_name: AgentName, settings: BridgeSettings) -> ThreadStore:
    """Pick the memory backend for one agent."""

    if settings.memory_backend == "dynamodb":
        return DynamoThreadStore(settings.memory_table_for(agent_name), region=settings.region)
    if settings.memory_backend == "file":
        return FileThreadStore(settings.memory_dir / f"{agent_name.value}.json")
    raise ValueError(f"Unsupported memory backend: {settings.memory_backend!r}")


__all__ = [
    "DynamoThreadStore",
    "FileThreadStore",
    "MemoryStoreError",
    "MessageRole",
    "Thread",
    "ThreadMessage",
    "ThreadStore",
    "create_thread_store",
]
