from __future__ import annotations

from agent_bridge.services.agents.registry import list_agents
from agent_bridge.services.routing.network_router import select_members
from agent_bridge_contracts.agent import AgentName


def _entries() -> list:
    return [e for e in list_agents() if e.agent_name is not AgentName.aws_network]


def test_best_scoring_members_win() -> None:
    route = select_members(
        "My stack rollback left a bucket behind", _entries(), fallback=AgentName.aws, max_members=2
    )

    assert route.members == (AgentName.cloudformation, AgentName.s3)
    assert "cloudformationAgent: stack, rollback" in route.rationale


def test_member_count_is_capped() -> None:
    route = select_members(
        "stack pipeline logs lambda table bucket", _entries(), fallback=AgentName.aws, max_members=2
    )

    assert len(route.members) == 2


def test_ties_keep_registry_order() -> None:
    route = select_members("bucket and table", _entries(), fallback=AgentName.aws, max_members=3)

    assert route.members == (AgentName.dynamodb, AgentName.s3)


def test_keywords_match_whole_words_only() -> None:
    route = select_members("restacked the s3bucket", _entries(), fallback=AgentName.aws)

    assert route.members == (AgentName.aws,)


def test_fallback_is_never_picked_by_keyword() -> None:
    route = select_members("aws account services", _entries(), fallback=AgentName.aws)

    assert route.members == (AgentName.aws,)
    assert "fallback" in route.rationale
