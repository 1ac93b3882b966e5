"""Invocation transports.

Two independent implementations of one `Invoker` contract, picked by mode:

- `BufferedInvoker`: one signed POST, waits for the whole JSON response.
- `StreamingInvoker`: one signed POST, relays the body as raw text fragments
  in arrival order.

Neither transport retries. The httpx timeout is disabled; time limits are
left to the surrounding environment.

Streaming phases: INIT -> SENDING -> (FAILED | STREAMING* -> DONE).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Protocol
from urllib.parse import urlsplit

import httpx

from agent_bridge_contracts.errors import StreamTerminatedEarlyError, TransportError

from .credentials import Credentials
from .endpoint import InvocationEndpoint, InvocationMode
from .signing import Clock, SignedRequest, sign_request

logger = logging.getLogger(__name__)


FragmentCallback = Callable[[str], None]


@dataclass(frozen=True)
class TransportResult:
    output: str
    agent: str | None = None


class Invoker(Protocol):
    def invoke(
        self,
        endpoint: InvocationEndpoint,
        body: bytes,
        credentials: Credentials,
        *,
        on_fragment: FragmentCallback | None = None,
    ) -> TransportResult:
        ...

    def close(self) -> None:
        ...


def _sign(endpoint: InvocationEndpoint, body: bytes, credentials: Credentials, clock: Clock | None) -> SignedRequest:
    headers = {
        "host": urlsplit(endpoint.url).netloc,
        "content-type": "application/json",
    }
    return sign_request(
        method="POST",
        url=endpoint.url,
        headers=headers,
        body=body,
        region=endpoint.region,
        service=endpoint.service,
        credentials=credentials,
        clock=clock,
    )


class _HttpInvoker:
    def __init__(self, client: httpx.Client | None = None, *, clock: Clock | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=None)
        self._clock = clock

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class BufferedInvoker(_HttpInvoker):
    def invoke(
        self,
        endpoint: InvocationEndpoint,
        body: bytes,
        credentials: Credentials,
        *,
        on_fragment: FragmentCallback | None = None,
    ) -> TransportResult:
        signed = _sign(endpoint, body, credentials, self._clock)
        logger.info("transport.buffered start host=%s body_bytes=%s", urlsplit(endpoint.url).netloc, len(body))

        try:
            response = self._client.post(signed.url, content=signed.body, headers=signed.headers)
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {e}", url=endpoint.url) from e

        if not response.is_success:
            raise TransportError(
                f"Remote agent returned HTTP {response.status_code}",
                status_code=response.status_code,
                raw_body=response.text,
                url=endpoint.url,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(
                "Response body is not valid JSON",
                status_code=response.status_code,
                raw_body=response.text,
                url=endpoint.url,
            ) from e

        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            message = payload["message"]
            agent = payload.get("agent")
        else:
            message = json.dumps(payload)
            agent = None

        logger.info("transport.buffered end status=%s output_chars=%s", response.status_code, len(message))
        return TransportResult(output=message, agent=agent if isinstance(agent, str) else None)


class StreamPhase(str, Enum):
    INIT = "INIT"
    SENDING = "SENDING"
    STREAMING = "STREAMING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class StreamState:
    """Per-invocation stream bookkeeping. Never persisted."""

    phase: StreamPhase = StreamPhase.INIT
    fragments: list[str] = field(default_factory=list)
    done: bool = False

    @property
    def accumulated(self) -> str:
        return "".join(self.fragments)


class StreamingInvoker(_HttpInvoker):
    def iter_fragments(
        self,
        endpoint: InvocationEndpoint,
        body: bytes,
        credentials: Credentials,
        *,
        state: StreamState | None = None,
    ) -> Iterator[str]:
        """Yield response text fragments in arrival order.

        Status and body presence are checked before the first fragment is
        yielded, so a failed request never delivers partial output.
        """

        state = state if state is not None else StreamState()
        signed = _sign(endpoint, body, credentials, self._clock)

        state.phase = StreamPhase.SENDING
        logger.info("transport.stream start host=%s body_bytes=%s", urlsplit(endpoint.url).netloc, len(body))
        try:
            with self._client.stream("POST", signed.url, content=signed.body, headers=signed.headers) as response:
                if not response.is_success:
                    state.phase = StreamPhase.FAILED
                    raise TransportError(
                        f"Remote agent returned HTTP {response.status_code}",
                        status_code=response.status_code,
                        raw_body=response.read().decode("utf-8", errors="replace"),
                        url=endpoint.url,
                    )
                if response.headers.get("content-length") == "0":
                    state.phase = StreamPhase.FAILED
                    raise TransportError(
                        "Remote agent returned no response body",
                        status_code=response.status_code,
                        url=endpoint.url,
                    )

                state.phase = StreamPhase.STREAMING
                for fragment in response.iter_text():
                    if not fragment:
                        continue
                    state.fragments.append(fragment)
                    yield fragment

                # Chunked responses carry no content-length; an empty one only shows up here.
                if not state.fragments:
                    state.phase = StreamPhase.FAILED
                    raise TransportError(
                        "Remote agent returned no response body",
                        status_code=response.status_code,
                        url=endpoint.url,
                    )
        except httpx.RequestError as e:
            failed_mid_stream = state.phase is StreamPhase.STREAMING
            state.phase = StreamPhase.FAILED
            if failed_mid_stream:
                logger.warning(
                    "transport.stream truncated fragments=%s chars=%s", len(state.fragments), len(state.accumulated)
                )
                raise StreamTerminatedEarlyError(
                    f"Stream closed before completion: {e}",
                    partial_output=state.accumulated,
                    url=endpoint.url,
                ) from e
            raise TransportError(f"Request failed: {e}", url=endpoint.url) from e

        state.phase = StreamPhase.DONE
        state.done = True
        logger.info("transport.stream end fragments=%s chars=%s", len(state.fragments), len(state.accumulated))

    def invoke(
        self,
        endpoint: InvocationEndpoint,
        body: bytes,
        credentials: Credentials,
        *,
        on_fragment: FragmentCallback | None = None,
    ) -> TransportResult:
        state = StreamState()
        for fragment in self.iter_fragments(endpoint, body, credentials, state=state):
            if on_fragment is not None:
                on_fragment(fragment)
        return TransportResult(output=state.accumulated)


def build_invoker(
    mode: InvocationMode,
    *,
    client: httpx.Client | None = None,
    clock: Clock | None = None,
) -> Invoker:
    if mode is InvocationMode.streaming:
        return StreamingInvoker(client, clock=clock)
    return BufferedInvoker(client, clock=clock)
