from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from agent_bridge_contracts.agent import AgentName

from .registry_models import AgentRegistry, AgentRegistryEntry, split_entrypoint

logger = logging.getLogger(__name__)

REGISTRY_PATH_ENV = "AGENT_BRIDGE_REGISTRY_PATH"
_PACKAGE_ROOT = Path(__file__).resolve().parents[2]

# One entry per registry file read.
_CACHE: dict[Path, AgentRegistry] = {}


def registry_path() -> Path:
    """Where the registry is read from: the env override, else the copy shipped in the package."""

    override = os.getenv(REGISTRY_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return _PACKAGE_ROOT / "service_directory" / "agents.json"


def resolve_entrypoint(entrypoint: str) -> tuple[str, str]:
    """Return (module_path, factory_name) from 'module.path:factory_name'."""

    return split_entrypoint(entrypoint)


def load_registry(*, force_reload: bool = False) -> AgentRegistry:
    path = registry_path()
    if not force_reload and path in _CACHE:
        return _CACHE[path]

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Agent registry not found at {path}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Agent registry at {path} is not valid JSON: {e}") from e

    registry = AgentRegistry.model_validate(data)
    logger.info("registry.loaded path=%s agents=%d", path, len(registry.root))
    _CACHE[path] = registry
    return registry


def list_agents() -> list[AgentRegistryEntry]:
    return list(load_registry().root)


def get_agent(agent_name: AgentName) -> AgentRegistryEntry:
    entry = load_registry().find(agent_name)
    if entry is None:
        raise KeyError(f"Agent not found: {agent_name.value}")
    return entry
