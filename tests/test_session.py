from __future__ import annotations

import itertools

import pytest

from agent_bridge_contracts.agent import AgentName
from agent_bridge_contracts.session import (
    SessionContext,
    derive_resource_id,
    derive_thread_id,
    generate_session_id,
    is_valid_session_id,
    split_thread_id,
)


SESSIONS = ["abc", "chat-1714560000000", "a_b-c", "0", "x" * 128]


def test_thread_ids_are_distinct_for_distinct_pairs() -> None:
    pairs = list(itertools.product(AgentName, SESSIONS))
    thread_ids = {derive_thread_id(agent, sid) for agent, sid in pairs}
    assert len(thread_ids) == len(pairs)


def test_split_recovers_agent_and_session() -> None:
    for agent, sid in itertools.product(AgentName, SESSIONS):
        assert split_thread_id(derive_thread_id(agent, sid)) == (agent, sid)


def test_thread_id_format() -> None:
    assert derive_thread_id(AgentName.s3, "abc") == "s3Agent::abc"
    assert derive_thread_id("cloudwatchLogsAgent", "abc") == "cloudwatchLogsAgent::abc"


def test_same_session_same_agent_is_stable_and_agent_switch_changes_thread() -> None:
    sid = generate_session_id()
    first = derive_thread_id(AgentName.dynamodb, sid)
    second = derive_thread_id(AgentName.dynamodb, sid)
    switched = derive_thread_id(AgentName.s3, sid)

    assert first == second
    assert switched != first


def test_resource_id_is_pure() -> None:
    assert derive_resource_id("abc") == derive_resource_id("abc") == "resource-abc"
    assert derive_resource_id("abc", "remote-proxy") == "remote-proxy-abc"


@pytest.mark.parametrize("sid", ["", "has::separator", "with space", "slash/y", "x" * 129])
def test_unsafe_session_ids_are_rejected(sid: str) -> None:
    assert not is_valid_session_id(sid)
    with pytest.raises(ValueError):
        derive_thread_id(AgentName.aws, sid)


def test_generated_session_ids_are_valid_and_unique() -> None:
    ids = {generate_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(is_valid_session_id(i) for i in ids)


def test_split_rejects_bare_and_unknown_agent_ids() -> None:
    with pytest.raises(ValueError):
        split_thread_id("abc")
    with pytest.raises(ValueError):
        split_thread_id("storageAgent::abc")


def test_context_from_wire_accepts_bare_and_matching_namespaced_ids() -> None:
    bare = SessionContext.from_wire(AgentName.s3, "abc", "resource-abc")
    namespaced = SessionContext.from_wire(AgentName.s3, "s3Agent::abc", "resource-abc")

    assert bare == namespaced
    assert bare.thread_id == "s3Agent::abc"
    assert bare.session_id == "abc"


def test_context_from_wire_rejects_other_agents_thread() -> None:
    with pytest.raises(ValueError, match="namespaced for 'lambdaAgent'"):
        SessionContext.from_wire(AgentName.s3, "lambdaAgent::abc", "resource-abc")


def test_context_rejects_mismatched_thread_id() -> None:
    with pytest.raises(ValueError):
        SessionContext(session_id="abc", agent_name=AgentName.s3, thread_id="abc", resource_id="r")
