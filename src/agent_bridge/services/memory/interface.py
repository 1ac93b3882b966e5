"""Persistence interface for agent conversation memory.

Every key is a namespaced thread id (`<agentName>::<sessionId>`), so two agents
never read each other's history for the same session.

Error behavior:
- [`ThreadStore.list_messages()`] returns an empty list for an unknown thread.
- Backend failures raise `MemoryStoreError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class MemoryStoreError(RuntimeError):
    """Raised when a memory backend cannot read or write."""


class MessageRole(str, Enum):
    user = "user"
    assistant = "assistant"


class Thread(BaseModel):
    thread_id: str
    resource_id: str
    created_at: datetime
    updated_at: datetime


class ThreadMessage(BaseModel):
    message_id: str
    thread_id: str
    role: MessageRole
    content: str
    created_at: datetime


class ThreadStore(ABC):
    """Port for conversation memory."""

    @abstractmethod
    def get_or_create_thread(self, thread_id: str, resource_id: str) -> Thread:
        """Return the thread, creating it on first use."""

    @abstractmethod
    def list_messages(self, thread_id: str, *, limit: int | None = None) -> list[ThreadMessage]:
        """List messages oldest-first; `limit` keeps only the most recent ones."""

    @abstractmethod
    def append_message(self, thread_id: str, resource_id: str, role: MessageRole, content: str) -> ThreadMessage:
        """Create + append a message with store-owned ID/timestamp."""

    @abstractmethod
    def delete_thread(self, thread_id: str) -> None:
        """Delete a thread and its messages.

        Raises:
            KeyError: if the thread does not exist.
        """
