from __future__ import annotations

import json

import pytest

from agent_bridge_contracts.agent import DEFAULT_AGENT, AgentName
from agent_bridge_contracts.envelope import RequestEnvelope, parse_envelope
from agent_bridge_contracts.errors import ErrorKind, RequestValidationError
from agent_bridge_contracts.session import SessionContext


def _body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "query": "List my stacks",
        "threadId": "abc",
        "resourceId": "resource-abc",
        "agent": "cloudformationAgent",
    }
    body.update(overrides)
    return body


def test_valid_envelope_parses_to_namespaced_context() -> None:
    envelope = parse_envelope(json.dumps(_body()).encode("utf-8"))

    assert envelope.agent is AgentName.cloudformation
    ctx = envelope.session_context()
    assert ctx.thread_id == "cloudformationAgent::abc"
    assert ctx.resource_id == "resource-abc"


def test_missing_agent_defaults_to_unified_agent() -> None:
    body = _body()
    body.pop("agent")

    assert parse_envelope(body).agent is DEFAULT_AGENT


@pytest.mark.parametrize("query", ["", "   "])
def test_empty_query_is_rejected(query: str) -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_envelope(_body(query=query))

    assert info.value.kind is ErrorKind.validation
    assert info.value.errors == ["query: Query cannot be empty"]


def test_unknown_agent_is_rejected() -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_envelope(_body(agent="storageAgent"))

    assert len(info.value.errors) == 1
    assert info.value.errors[0].startswith("agent: ")


def test_thread_namespaced_for_another_agent_is_rejected() -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_envelope(_body(threadId="s3Agent::abc"))

    assert "namespaced for 's3Agent'" in info.value.errors[0]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, "Missing request body"),
        (b"", "Missing request body"),
        (b"{not json", "Invalid JSON in request body"),
        (b"[1, 2]", "Request body must be a JSON object"),
    ],
)
def test_malformed_bodies(raw: bytes | None, expected: str) -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_envelope(raw)

    assert info.value.errors == [expected]


def test_missing_fields_are_all_reported() -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_envelope({"query": "hi"})

    joined = " | ".join(info.value.errors)
    assert "threadId" in joined
    assert "resourceId" in joined


def test_for_session_sends_bare_session_id() -> None:
    ctx = SessionContext.for_agent(AgentName.s3, "abc")
    wire = json.loads(RequestEnvelope.for_session("count objects", ctx).to_wire())

    assert wire == {
        "query": "count objects",
        "threadId": "abc",
        "resourceId": "resource-abc",
        "agent": "s3Agent",
    }
    assert parse_envelope(json.dumps(wire)).session_context() == ctx


def test_validation_error_serializes_with_kind() -> None:
    err = RequestValidationError(["query: Query cannot be empty"])

    assert err.to_dict() == {
        "kind": "ValidationError",
        "message": "Invalid request",
        "context": {"errors": ["query: Query cannot be empty"]},
    }
