"""Caller-facing invocation.

    invoke(query, profile=?, agent=awsAgent, target_id=?, region=?, session_id=?, endpoint_override=?)
        -> InvokeResult(output, session_id, ...)

The returned session id is always populated so the next call can resume the
same memory thread. Errors propagate as `BridgeError` subclasses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from agent_bridge_contracts.agent import DEFAULT_AGENT, AgentName
from agent_bridge_contracts.envelope import RequestEnvelope
from agent_bridge_contracts.errors import RequestValidationError
from agent_bridge_contracts.session import (
    DEFAULT_RESOURCE_PREFIX,
    SessionContext,
    generate_session_id,
    is_valid_session_id,
)

from .credentials import Credentials, resolve_credentials
from .endpoint import (
    ENDPOINT_CACHE,
    EndpointCache,
    EndpointResolver,
    InvocationMode,
    default_region,
    default_target_id,
    resolve_invocation_endpoint,
)
from .transport import FragmentCallback, Invoker, build_invoker

logger = logging.getLogger(__name__)


CredentialResolver = Callable[["str | None"], Credentials]


@dataclass(frozen=True)
class InvokeResult:
    output: str
    session_id: str
    agent: str
    thread_id: str


def build_session_context(
    agent: AgentName | str,
    session_id: str | None,
    *,
    resource_prefix: str = DEFAULT_RESOURCE_PREFIX,
) -> SessionContext:
    """Validate caller identity inputs and derive the namespaced context.

    Raises:
        RequestValidationError: for an unknown agent or an unsafe session id.
    """

    errors: list[str] = []
    try:
        agent_name = AgentName(agent)
    except ValueError:
        valid = ", ".join(a.value for a in AgentName)
        errors.append(f"agent: unknown agent {agent!r}; valid agents are: {valid}")
        agent_name = DEFAULT_AGENT

    sid = session_id or generate_session_id()
    if not is_valid_session_id(sid):
        errors.append("sessionId: must be 1-128 characters of letters, digits, '_' or '-'")

    if errors:
        raise RequestValidationError(errors)
    return SessionContext.for_agent(agent_name, sid, resource_prefix=resource_prefix)


def invoke(
    query: str,
    *,
    profile: str | None = None,
    agent: AgentName | str = DEFAULT_AGENT,
    target_id: str | None = None,
    region: str | None = None,
    session_id: str | None = None,
    endpoint_override: str | None = None,
    mode: InvocationMode = InvocationMode.streaming,
    on_fragment: FragmentCallback | None = None,
    resource_prefix: str = DEFAULT_RESOURCE_PREFIX,
    credential_resolver: CredentialResolver = resolve_credentials,
    endpoint_resolver: EndpointResolver | None = None,
    endpoint_cache: EndpointCache = ENDPOINT_CACHE,
    invoker: Invoker | None = None,
) -> InvokeResult:
    if not query or not query.strip():
        raise RequestValidationError(["query: Query cannot be empty"])

    context = build_session_context(agent, session_id, resource_prefix=resource_prefix)
    credentials = credential_resolver(profile)
    endpoint = resolve_invocation_endpoint(
        mode,
        target_id=target_id or default_target_id(),
        region=region or default_region(),
        credentials=credentials,
        override=endpoint_override,
        resolver=endpoint_resolver,
        cache=endpoint_cache,
    )
    body = RequestEnvelope.for_session(query, context).to_wire()

    logger.info(
        "invoke.start agent=%s mode=%s thread_id=%s override=%s",
        context.agent_name.value,
        mode.value,
        context.thread_id,
        bool(endpoint_override),
    )

    active = invoker or build_invoker(mode)
    try:
        result = active.invoke(endpoint, body, credentials, on_fragment=on_fragment)
    finally:
        if invoker is None:
            active.close()

    logger.info("invoke.end agent=%s output_chars=%s", context.agent_name.value, len(result.output))
    return InvokeResult(
        output=result.output,
        session_id=context.session_id,
        agent=result.agent or context.agent_name.value,
        thread_id=context.thread_id,
    )
