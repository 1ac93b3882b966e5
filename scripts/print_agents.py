from __future__ import annotations

from agent_bridge.services.agents.registry import list_agents
from agent_bridge.services.settings.config import BridgeSettings


def main() -> None:
    settings = BridgeSettings.from_env()
    for a in list_agents():
        print(f"{a.agent_name.value}: {a.name}")
        print(f"  kind: {a.kind.value}")
        print(f"  enabled: {a.enabled}")
        if a.version is not None:
            print(f"  version: {a.version}")
        if a.members:
            print(f"  members: {', '.join(m.value for m in a.members)}")
        if a.fallback is not None:
            print(f"  fallback: {a.fallback.value}")
        print(f"  model: {settings.model_for(a.agent_name)}")
        print(f"  keywords: {', '.join(a.keywords)}")
        print(f"  entrypoint: {a.entrypoint}")


if __name__ == "__main__":
    main()
