from __future__ import annotations

import asyncio
from typing import Any

import pytest

from agent_bridge.services.llm.client import LLMClientError, agenerate, astream


PROMPT = "# s3Agent\n\nYou are an AWS S3 specialist."


def test_stub_reply_names_agent_and_counts_history() -> None:
    history = [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}]

    out = asyncio.run(agenerate(PROMPT, [*history, {"role": "user", "content": "  list buckets "}]))

    assert out == "[s3Agent] You asked: list buckets (recalled 2 earlier messages)"


def test_stub_stream_concatenates_to_buffered_reply() -> None:
    messages = [{"role": "user", "content": "list buckets"}]

    async def collect() -> list[str]:
        return [f async for f in astream(PROMPT, messages)]

    fragments = asyncio.run(collect())

    assert len(fragments) > 1
    assert "".join(fragments) == asyncio.run(agenerate(PROMPT, messages))


def test_openai_mode_requires_api_key(monkeypatch: Any) -> None:
    monkeypatch.setenv("AGENT_BRIDGE_LLM_MODE", "openai")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(LLMClientError):
        asyncio.run(agenerate(PROMPT, [{"role": "user", "content": "hi"}]))
