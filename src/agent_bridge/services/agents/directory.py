"""Agent dispatch directory.

Targets are built from the declarative registry entries in
`service_directory/agents.json`:

- parse entrypoint `module:factory`
- import module via importlib
- call `factory(entry, BuildContext)` (agents first, then networks)
- validate it conforms to InvokableTarget and serves the entry's agent name

Every enumerated agent name must end up with a target, so dispatch never has
to reject an unknown name; that check happens at envelope validation.

The directory is process-scoped state, built lazily exactly once. Concurrent
first callers all await the same in-flight construction task. A failed build
is not remembered; the next call starts a new one.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, AsyncIterator, Callable, Mapping

from agent_bridge_contracts.agent import AgentName
from agent_bridge_contracts.session import SessionContext, derive_thread_id

from ..settings.config import BridgeSettings
from .base import AgentDispatchError, BuildContext, InvokableTarget
from .registry import load_registry, resolve_entrypoint
from .registry_models import AgentKind, AgentRegistry, AgentRegistryEntry

logger = logging.getLogger(__name__)


class AgentDirectory:
    def __init__(self, targets: Mapping[AgentName, InvokableTarget]) -> None:
        self._targets = dict(targets)

    @property
    def agent_names(self) -> list[AgentName]:
        return list(self._targets)

    def target(self, agent_name: AgentName) -> InvokableTarget:
        try:
            return self._targets[agent_name]
        except KeyError as e:
            raise AgentDispatchError("not_configured", f"No target for agent {agent_name.value}") from e

    def _checked_target(self, agent_name: AgentName, context: SessionContext) -> InvokableTarget:
        if context.agent_name is not agent_name or context.thread_id != derive_thread_id(
            agent_name, context.session_id
        ):
            raise AgentDispatchError(
                "contract_violation",
                f"threadId {context.thread_id!r} is not namespaced for {agent_name.value}",
            )
        return self.target(agent_name)

    async def generate(self, agent_name: AgentName, query: str, context: SessionContext) -> str:
        target = self._checked_target(agent_name, context)
        logger.info("dispatch.generate start agent=%s thread_id=%s", agent_name.value, context.thread_id)
        try:
            return await target.generate(query, context)
        except AgentDispatchError:
            raise
        except Exception as e:
            logger.exception("dispatch.generate failed agent=%s", agent_name.value)
            raise AgentDispatchError("invoke_error", f"Agent invocation failed for {agent_name.value}: {e}") from e

    async def stream(self, agent_name: AgentName, query: str, context: SessionContext) -> AsyncIterator[str]:
        target = self._checked_target(agent_name, context)
        logger.info("dispatch.stream start agent=%s thread_id=%s", agent_name.value, context.thread_id)
        try:
            async for fragment in target.stream(query, context):
                yield fragment
        except AgentDispatchError:
            raise
        except Exception as e:
            logger.exception("dispatch.stream failed agent=%s", agent_name.value)
            raise AgentDispatchError("invoke_error", f"Agent stream failed for {agent_name.value}: {e}") from e


TargetFactory = Callable[[AgentRegistryEntry, BuildContext], Any]


def _load_factory(entry: AgentRegistryEntry) -> TargetFactory:
    name = entry.agent_name.value
    try:
        module_path, symbol = resolve_entrypoint(entry.entrypoint)
    except ValueError as e:
        raise AgentDispatchError("bad_entrypoint", f"Invalid entrypoint for {name}: {entry.entrypoint}") from e

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise AgentDispatchError("import_error", f"Failed to import module '{module_path}' for agent {name}") from e

    try:
        return getattr(module, symbol)
    except AttributeError as e:
        raise AgentDispatchError(
            "symbol_not_found", f"Symbol '{symbol}' not found in module '{module_path}' for agent {name}"
        ) from e


def build_directory(
    settings: BridgeSettings | None = None,
    registry: AgentRegistry | None = None,
) -> AgentDirectory:
    settings = settings or BridgeSettings.from_env()
    registry = registry or load_registry()

    enabled = {e.agent_name: e for e in registry.root if e.enabled}
    missing = [n.value for n in AgentName if n not in enabled]
    if missing:
        raise AgentDispatchError("not_configured", f"No enabled registry entry for: {', '.join(missing)}")

    built: dict[AgentName, InvokableTarget] = {}
    ctx = BuildContext(settings=settings, entries=enabled, built=built)

    # Networks are built last so their members already exist.
    for entry in sorted(enabled.values(), key=lambda e: e.kind is AgentKind.network):
        factory = _load_factory(entry)
        try:
            target = factory(entry, ctx)
        except AgentDispatchError:
            raise
        except Exception as e:
            raise AgentDispatchError(
                "build_error", f"Failed to build '{entry.entrypoint}' for agent {entry.agent_name.value}: {e}"
            ) from e

        if not isinstance(target, InvokableTarget):
            raise AgentDispatchError(
                "type_error", f"Built object does not conform to InvokableTarget: {entry.entrypoint}"
            )
        if target.agent_name is not entry.agent_name:
            raise AgentDispatchError(
                "agent_name_mismatch",
                f"Built agent {target.agent_name} does not match registry entry {entry.agent_name.value}",
            )
        built[entry.agent_name] = target

    logger.info("directory.built agents=%s memory_backend=%s", len(built), settings.memory_backend)
    return AgentDirectory(built)


_DIRECTORY: AgentDirectory | None = None
_BUILDING: asyncio.Task[AgentDirectory] | None = None


async def get_directory(builder: Callable[[], AgentDirectory] | None = None) -> AgentDirectory:
    """Return the process directory, building it once on first use."""

    global _DIRECTORY, _BUILDING
    if _DIRECTORY is not None:
        return _DIRECTORY

    if _BUILDING is None:
        _BUILDING = asyncio.ensure_future(asyncio.to_thread(builder or build_directory))
    task = _BUILDING

    try:
        # Shielded so one cancelled waiter does not cancel the shared build.
        directory = await asyncio.shield(task)
    except Exception:
        if _BUILDING is task:
            _BUILDING = None
        raise

    _DIRECTORY = directory
    if _BUILDING is task:
        _BUILDING = None
    return directory


def reset_directory() -> None:
    global _DIRECTORY, _BUILDING
    _DIRECTORY = None
    _BUILDING = None
