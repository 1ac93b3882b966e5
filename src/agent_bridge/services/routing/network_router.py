"""Deterministic member selection for the agent network.

Members are scored by how many of their registry keywords appear in the query
(whole-word, case-insensitive). The best-scoring members win, capped at
`max_members`, ties keep registry order. With no match the fallback member
answers alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from agent_bridge_contracts.agent import AgentName

from ..agents.registry_models import AgentRegistryEntry


@dataclass(frozen=True)
class NetworkRoute:
    members: tuple[AgentName, ...]
    rationale: str


def _keyword_hits(q: str, keywords: Sequence[str]) -> list[str]:
    return [kw for kw in keywords if re.search(rf"(?<![a-z0-9]){re.escape(kw)}(?![a-z0-9])", q)]


def select_members(
    query: str,
    entries: Sequence[AgentRegistryEntry],
    *,
    fallback: AgentName,
    max_members: int = 2,
) -> NetworkRoute:
    q = (query or "").lower()

    scored: list[tuple[int, int, AgentName, list[str]]] = []
    for order, entry in enumerate(entries):
        if entry.agent_name is fallback or not entry.enabled:
            continue
        hits = _keyword_hits(q, entry.keywords)
        if hits:
            scored.append((-len(hits), order, entry.agent_name, hits))

    if not scored:
        return NetworkRoute(members=(fallback,), rationale="No specialist keywords matched; using fallback.")

    scored.sort()
    picked = scored[: max(1, max_members)]
    rationale = "; ".join(f"{name.value}: {', '.join(hits)}" for _, _, name, hits in picked)
    return NetworkRoute(members=tuple(name for _, _, name, _ in picked), rationale=rationale)
