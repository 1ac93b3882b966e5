from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

import pytest


@pytest.fixture(autouse=True)
def isolated_bridge(monkeypatch: Any, tmp_path: Path) -> Iterator[None]:
    """Stub LLM, per-test memory dir, and fresh process-scoped caches."""

    monkeypatch.setenv("AGENT_BRIDGE_LLM_MODE", "stub")
    monkeypatch.setenv("AGENT_BRIDGE_MEMORY_BACKEND", "file")
    monkeypatch.setenv("AGENT_BRIDGE_MEMORY_DIR", str(tmp_path / "memory"))
    monkeypatch.delenv("AGENT_BRIDGE_REGISTRY_PATH", raising=False)

    from agent_bridge.client.endpoint import ENDPOINT_CACHE
    from agent_bridge.services.agents.directory import reset_directory

    reset_directory()
    ENDPOINT_CACHE.clear()
    yield
    reset_directory()
    ENDPOINT_CACHE.clear()


@pytest.fixture
def credentials() -> Any:
    from agent_bridge.client.credentials import Credentials

    return Credentials(
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        session_token="session-token-example",
    )


@pytest.fixture
def fixed_clock() -> Any:
    def clock() -> datetime:
        return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    return clock
