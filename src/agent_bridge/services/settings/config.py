"""Typed server configuration.

Constructed from the environment via `BridgeSettings.from_env()` or passed
explicitly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from agent_bridge_contracts.agent import AgentName


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def agent_env_suffix(agent_name: AgentName) -> str:
    """`cloudwatchLogsAgent` -> `CLOUDWATCH_LOGS_AGENT`."""

    out: list[str] = []
    for ch in agent_name.value:
        if ch.isupper() and out:
            out.append("_")
        out.append(ch.upper())
    return "".join(out)


def _agent_env(prefix: str, agent_name: AgentName) -> str | None:
    """Per-agent override: `<prefix>_CLOUDWATCH_LOGS_AGENT`, else `<prefix>_CLOUDWATCHLOGSAGENT`."""

    return _env(f"{prefix}_{agent_env_suffix(agent_name)}") or _env(f"{prefix}_{agent_name.value.upper()}")


@dataclass(frozen=True)
class BridgeSettings:
    default_model: str = "gpt-4o-mini"

    # Memory
    memory_backend: str = "file"
    memory_dir: Path = Path("data") / "memory"
    history_limit: int = 42

    # Coordinator
    max_network_members: int = 2

    # AWS
    region: str = "us-east-1"

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        return cls(
            default_model=_env("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
            memory_backend=(_env("AGENT_BRIDGE_MEMORY_BACKEND", "file") or "file").strip().lower(),
            memory_dir=Path(_env("AGENT_BRIDGE_MEMORY_DIR", str(Path("data") / "memory")) or "data/memory"),
            history_limit=_env_int("AGENT_BRIDGE_HISTORY_LIMIT", 42),
            max_network_members=_env_int("AGENT_BRIDGE_NETWORK_MEMBERS", 2),
            region=_env("AWS_REGION", "us-east-1") or "us-east-1",
        )

    def model_for(self, agent_name: AgentName) -> str:
        return _agent_env("LLM_MODEL", agent_name) or self.default_model

    def memory_table_for(self, agent_name: AgentName) -> str:
        return _agent_env("MEMORY_TABLE_NAME", agent_name) or f"agent-bridge-memory-{agent_name.value}"
