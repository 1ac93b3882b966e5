from __future__ import annotations

import logging
import os
import time
from typing import AsyncIterator, Final, Sequence
from urllib.parse import urlparse

from openai import AsyncOpenAI, OpenAIError


# Per-agent overrides come from BridgeSettings.model_for().
_DEFAULT_MODEL: Final[str] = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

logger = logging.getLogger(__name__)


ChatMessage = dict[str, str]


class LLMClientError(RuntimeError):
    """Raised when the LLM client cannot generate a response."""


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v


def _mode() -> str:
    return (_env("AGENT_BRIDGE_LLM_MODE", "stub") or "stub").strip().lower()


def _label(system_prompt: str) -> str:
    for line in (system_prompt or "").splitlines():
        stripped = line.strip().lstrip("#").strip()
        if stripped:
            return stripped
    return "agent"


def _stub_reply(system_prompt: str, messages: Sequence[ChatMessage]) -> str:
    """Deterministic reply for dev and tests: names the agent, echoes the query, counts recall."""

    query = ""
    for m in reversed(messages):
        if m.get("role") == "user":
            query = m.get("content", "")
            break
    recalled = max(len(messages) - 1, 0)
    return f"[{_label(system_prompt)}] You asked: {query.strip()} (recalled {recalled} earlier messages)"


def _openai_client() -> tuple[AsyncOpenAI, str | None]:
    api_key = _env("OPENAI_API_KEY")
    if not api_key:
        raise LLMClientError("OPENAI_API_KEY is required when AGENT_BRIDGE_LLM_MODE=openai")

    # Any OpenAI-compatible gateway works.
    base_url = _env("OPENAI_BASE_URL")
    host = urlparse(base_url).hostname if base_url else None
    return AsyncOpenAI(api_key=api_key, base_url=base_url), host


def _messages(system_prompt: str, messages: Sequence[ChatMessage]) -> list[ChatMessage]:
    return [{"role": "system", "content": system_prompt}, *messages]


async def agenerate(
    system_prompt: str,
    messages: Sequence[ChatMessage],
    *,
    model: str | None = None,
    temperature: float = 0.0,
) -> str:
    """Generate a complete reply.

    Controlled by env vars:
    - AGENT_BRIDGE_LLM_MODE=stub|openai (default stub)
    - OPENAI_API_KEY (required if openai)
    - OPENAI_BASE_URL (optional; OpenAI-compatible proxies)
    - OPENAI_MODEL (default gpt-4o-mini)
    """

    resolved_model = model or _DEFAULT_MODEL
    mode = _mode()
    t0 = time.perf_counter()
    logger.info("llm.call start provider=%s model=%s messages=%s", mode, resolved_model, len(messages))

    if mode != "openai":
        out = _stub_reply(system_prompt, messages)
        logger.info(
            "llm.call end provider=stub model=%s elapsed_ms=%s output_chars=%s",
            resolved_model,
            int((time.perf_counter() - t0) * 1000),
            len(out),
        )
        return out

    client, host = _openai_client()
    try:
        resp = await client.chat.completions.create(
            model=resolved_model,
            messages=_messages(system_prompt, messages),
            temperature=temperature,
        )
    except OpenAIError as e:
        raise LLMClientError(f"LLM call failed: {e}") from e

    content = (resp.choices[0].message.content or "").strip()
    usage = getattr(resp, "usage", None)
    logger.info(
        "llm.call end provider=openai model=%s host=%s elapsed_ms=%s total_tokens=%s output_chars=%s",
        resolved_model,
        host,
        int((time.perf_counter() - t0) * 1000),
        getattr(usage, "total_tokens", None),
        len(content),
    )
    return content


async def astream(
    system_prompt: str,
    messages: Sequence[ChatMessage],
    *,
    model: str | None = None,
    temperature: float = 0.0,
) -> AsyncIterator[str]:
    """Yield reply text fragments as they are produced."""

    resolved_model = model or _DEFAULT_MODEL
    mode = _mode()
    t0 = time.perf_counter()
    chars = 0
    logger.info("llm.stream start provider=%s model=%s messages=%s", mode, resolved_model, len(messages))

    if mode != "openai":
        words = _stub_reply(system_prompt, messages).split(" ")
        for i, word in enumerate(words):
            fragment = word if i == len(words) - 1 else word + " "
            chars += len(fragment)
            yield fragment
    else:
        client, _ = _openai_client()
        try:
            stream = await client.chat.completions.create(
                model=resolved_model,
                messages=_messages(system_prompt, messages),
                temperature=temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    chars += len(delta)
                    yield delta
        except OpenAIError as e:
            raise LLMClientError(f"LLM stream failed: {e}") from e

    logger.info(
        "llm.stream end provider=%s model=%s elapsed_ms=%s output_chars=%s",
        mode,
        resolved_model,
        int((time.perf_counter() - t0) * 1000),
        chars,
    )
