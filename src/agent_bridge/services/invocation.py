"""Server-side request handling shared by the FastAPI routes and the Lambda handler.

Both paths validate the envelope before anything reaches the directory, and
both dispatch with the namespaced thread id rebuilt from the envelope.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from agent_bridge_contracts.envelope import (
    InternalErrorResponse,
    InvalidRequestResponse,
    InvokeResponse,
    RequestEnvelope,
    parse_envelope,
)
from agent_bridge_contracts.errors import RequestValidationError

from .agents.directory import get_directory

logger = logging.getLogger(__name__)


RawBody = bytes | str | dict[str, Any] | None


def _validate(raw_body: RawBody) -> RequestEnvelope | dict[str, Any]:
    try:
        return parse_envelope(raw_body)
    except RequestValidationError as e:
        logger.info("invocation.rejected errors=%s", e.errors)
        return InvalidRequestResponse(errors=e.errors).model_dump()


async def run_buffered(raw_body: RawBody) -> tuple[int, dict[str, Any]]:
    """Handle one buffered request; returns (status_code, json_body)."""

    envelope = _validate(raw_body)
    if isinstance(envelope, dict):
        return 400, envelope

    try:
        directory = await get_directory()
        text = await directory.generate(envelope.agent, envelope.query, envelope.session_context())
    except Exception as e:
        logger.exception("invocation.buffered failed agent=%s", envelope.agent.value)
        return 500, InternalErrorResponse(error=str(e)).model_dump()

    return 200, InvokeResponse(message=text, agent=envelope.agent.value).model_dump()


@dataclass
class StreamOpening:
    """Outcome of starting a stream: either an error body or the fragment source."""

    status_code: int
    body: dict[str, Any] | None = None
    fragments: AsyncIterator[str] | None = None


async def _relay(first: str, source: AsyncIterator[str]) -> AsyncIterator[str]:
    if first:
        yield first
    try:
        async for fragment in source:
            yield fragment
    except Exception as e:
        # Status is already sent; the error travels as a final fragment.
        logger.exception("invocation.stream failed after start")
        yield json.dumps(InternalErrorResponse(error=str(e)).model_dump())


async def open_stream(raw_body: RawBody) -> StreamOpening:
    """Validate and start a stream.

    The first fragment is pulled before returning, so failures that happen
    before any output still get a non-2xx status.
    """

    envelope = _validate(raw_body)
    if isinstance(envelope, dict):
        return StreamOpening(status_code=400, body=envelope)

    try:
        directory = await get_directory()
        source = directory.stream(envelope.agent, envelope.query, envelope.session_context())
        first = await anext(source, "")
    except Exception as e:
        logger.exception("invocation.stream failed before start agent=%s", envelope.agent.value)
        return StreamOpening(status_code=500, body=InternalErrorResponse(error=str(e)).model_dump())

    return StreamOpening(status_code=200, fragments=_relay(first, source))
