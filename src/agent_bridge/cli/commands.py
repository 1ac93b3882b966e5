"""Slash-command parsing for the interactive chat.

Kept free of I/O so the loop in `chat.py` only has to act on the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from agent_bridge_contracts.agent import AGENT_ALIASES, SPECIALIST_AGENTS, AgentName, resolve_agent_alias


CAPABILITIES_QUERY: Final[str] = "What are your capabilities?"


class CommandType(str, Enum):
    empty = "empty"
    query = "query"
    quit = "quit"
    switch_agent = "switch_agent"
    capabilities = "capabilities"
    help = "help"
    session = "session"
    toggle_streaming = "toggle_streaming"
    unknown = "unknown"


@dataclass(frozen=True)
class ParsedCommand:
    type: CommandType
    text: str = ""
    agent: AgentName | None = None
    # For /streaming: True/False when on/off was given, None to toggle.
    enabled: bool | None = None
    error: str | None = None


def _switch(target: str) -> ParsedCommand:
    if not target:
        return ParsedCommand(CommandType.switch_agent, error="Usage: /agent <name|alias>")
    agent = resolve_agent_alias(target)
    if agent is None:
        return ParsedCommand(CommandType.switch_agent, text=target, error=f"Unknown agent: {target}")
    return ParsedCommand(CommandType.switch_agent, text=target, agent=agent)


_SWITCH_WORDS: Final[dict[str, bool]] = {"on": True, "off": False}


def _streaming(arg: str) -> ParsedCommand:
    if not arg:
        return ParsedCommand(CommandType.toggle_streaming)
    enabled = _SWITCH_WORDS.get(arg.lower())
    if enabled is None:
        return ParsedCommand(CommandType.toggle_streaming, text=arg, error="Usage: /streaming [on|off]")
    return ParsedCommand(CommandType.toggle_streaming, text=arg, enabled=enabled)


def parse_command(line: str) -> ParsedCommand:
    text = (line or "").strip()
    if not text:
        return ParsedCommand(CommandType.empty)

    lowered = text.lower()
    if lowered in {"exit", "quit"}:
        return ParsedCommand(CommandType.quit)

    # Legacy "agent:<name>" form.
    if lowered.startswith("agent:"):
        return _switch(text.split(":", 1)[1].strip())

    if not text.startswith("/"):
        return ParsedCommand(CommandType.query, text=text)

    command, _, rest = text[1:].partition(" ")
    command = command.lower()
    rest = rest.strip()

    if command in {"q", "quit", "exit"}:
        return ParsedCommand(CommandType.quit)
    if command in {"a", "agent"}:
        return _switch(rest)
    if command == "capabilities":
        return ParsedCommand(CommandType.capabilities, text=CAPABILITIES_QUERY)
    if command == "help":
        return ParsedCommand(CommandType.help)
    if command == "session":
        return ParsedCommand(CommandType.session)
    if command == "streaming":
        return _streaming(rest)
    return ParsedCommand(CommandType.unknown, text=text, error=f"Unknown command: /{command}")


def help_lines() -> list[str]:
    aliases: dict[AgentName, list[str]] = {}
    for alias, agent in AGENT_ALIASES.items():
        aliases.setdefault(agent, []).append(alias)

    lines = [
        "/agent, /a <name|alias>  switch agent (memory is per agent)",
        "/capabilities            ask the current agent what it can do",
        "/session                 show session, thread and resource ids",
        "/streaming [on|off]      turn streaming on or off (toggles without an argument)",
        "/help                    show this help",
        "/quit, /exit, /q         leave",
        "",
    ]
    general = [a for a in AgentName if a not in SPECIALIST_AGENTS]
    for title, group in (("Specialist agents:", SPECIALIST_AGENTS), ("General agents:", general)):
        lines.append(title)
        lines.extend(f"  {agent.value:<22} {', '.join(aliases.get(agent, []))}" for agent in group)
    return lines
