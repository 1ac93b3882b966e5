from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

from agent_bridge_contracts.agent import AgentName


_ENTRYPOINT_FORM = "entrypoint must look like 'module.path:factory_name'"


def split_entrypoint(entrypoint: str) -> tuple[str, str]:
    module_path, sep, factory = entrypoint.partition(":")
    if not sep or not module_path or not factory:
        raise ValueError(_ENTRYPOINT_FORM)
    return module_path, factory


class AgentKind(str, Enum):
    agent = "agent"
    network = "network"


class AgentRegistryEntry(BaseModel):
    agent_name: AgentName
    name: str
    description: str
    kind: AgentKind = AgentKind.agent
    keywords: list[str]
    entrypoint: str
    prompt: str | None = None
    members: list[AgentName] = Field(default_factory=list)
    fallback: AgentName | None = None
    version: str | None = None
    enabled: bool = True

    @field_validator("entrypoint")
    @classmethod
    def check_entrypoint(cls, v: str) -> str:
        split_entrypoint(v)
        return v

    @field_validator("keywords")
    @classmethod
    def normalize_keywords(cls, v: list[str]) -> list[str]:
        # Lowercased, stripped, first occurrence wins.
        cleaned = list(dict.fromkeys(k.strip().lower() for k in v if k.strip()))
        if not cleaned:
            raise ValueError("keywords needs at least one non-blank entry")
        return cleaned

    @model_validator(mode="after")
    def check_members(self) -> "AgentRegistryEntry":
        name = self.agent_name.value
        if self.kind is not AgentKind.network:
            if self.members:
                raise ValueError(f"{name}: only networks may list members")
            return self
        if not self.members:
            raise ValueError(f"{name}: a network needs at least one member")
        if self.agent_name in self.members:
            raise ValueError(f"{name}: a network cannot contain itself")
        return self


class AgentRegistry(RootModel[list[AgentRegistryEntry]]):
    root: list[AgentRegistryEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_names(self) -> "AgentRegistry":
        names = [e.agent_name for e in self.root]
        dupes = sorted({n.value for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate agent_name in registry: {', '.join(dupes)}")
        return self

    def find(self, agent_name: AgentName) -> AgentRegistryEntry | None:
        return next((e for e in self.root if e.agent_name is agent_name), None)
