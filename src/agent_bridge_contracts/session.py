"""Session and thread identity.

A session id is the caller-facing conversation handle. Memory on the server is
keyed by a thread id that namespaces the session with the agent name, so the
same session never shares memory between two agents:

    thread_id = "<agentName>::<sessionId>"

Session ids are restricted to `[A-Za-z0-9_-]`, which keeps the separator out of
both halves and makes the pair recoverable from the thread id.
"""

from __future__ import annotations

import re
import uuid
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .agent import AgentName, parse_agent_name


THREAD_SEPARATOR: Final[str] = "::"
SESSION_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
DEFAULT_RESOURCE_PREFIX: Final[str] = "resource"


def generate_session_id() -> str:
    """Return a new opaque, URL-safe session id."""

    return uuid.uuid4().hex


def is_valid_session_id(session_id: str) -> bool:
    return bool(SESSION_ID_PATTERN.match(session_id or ""))


def validate_session_id(session_id: str) -> str:
    if not is_valid_session_id(session_id):
        raise ValueError(
            "sessionId must be 1-128 characters of letters, digits, '_' or '-'"
        )
    return session_id


def derive_thread_id(agent_name: AgentName | str, session_id: str) -> str:
    agent = parse_agent_name(agent_name)
    return f"{agent.value}{THREAD_SEPARATOR}{validate_session_id(session_id)}"


def split_thread_id(thread_id: str) -> tuple[AgentName, str]:
    """Recover `(agent_name, session_id)` from a namespaced thread id.

    Raises:
        ValueError: if the id is not namespaced or either half is invalid.
    """

    agent_part, sep, session_part = thread_id.partition(THREAD_SEPARATOR)
    if not sep:
        raise ValueError(f"threadId is not namespaced: {thread_id!r}")
    return parse_agent_name(agent_part), validate_session_id(session_part)


def derive_resource_id(session_id: str, prefix: str = DEFAULT_RESOURCE_PREFIX) -> str:
    return f"{prefix}-{validate_session_id(session_id)}"


class SessionContext(BaseModel):
    """Identity carried by every dispatch call."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    agent_name: AgentName
    thread_id: str
    resource_id: str = Field(min_length=1)

    @field_validator("session_id")
    @classmethod
    def _check_session_id(cls, v: str) -> str:
        return validate_session_id(v)

    @model_validator(mode="after")
    def _check_thread_id(self) -> "SessionContext":
        expected = derive_thread_id(self.agent_name, self.session_id)
        if self.thread_id != expected:
            raise ValueError(f"threadId must be {expected!r}, got {self.thread_id!r}")
        return self

    @classmethod
    def for_agent(
        cls,
        agent_name: AgentName | str,
        session_id: str,
        *,
        resource_id: str | None = None,
        resource_prefix: str = DEFAULT_RESOURCE_PREFIX,
    ) -> "SessionContext":
        agent = parse_agent_name(agent_name)
        return cls(
            session_id=session_id,
            agent_name=agent,
            thread_id=derive_thread_id(agent, session_id),
            resource_id=resource_id or derive_resource_id(session_id, resource_prefix),
        )

    @classmethod
    def from_wire(cls, agent_name: AgentName, thread_id: str, resource_id: str) -> "SessionContext":
        """Build the server-side context from envelope fields.

        Accepts either the bare session id or an id already namespaced for the
        same agent. An id namespaced for a different agent is rejected.
        """

        if THREAD_SEPARATOR in thread_id:
            owner, session_id = split_thread_id(thread_id)
            if owner is not agent_name:
                raise ValueError(
                    f"threadId is namespaced for {owner.value!r} but the request targets {agent_name.value!r}"
                )
        else:
            session_id = validate_session_id(thread_id)
        return cls.for_agent(agent_name, session_id, resource_id=resource_id)
