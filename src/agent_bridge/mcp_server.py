"""MCP stdio server exposing the `remoteAgentProxy` tool.

The tool forwards a query to a remotely hosted agent through the same signed
client the CLI uses. Every result is a single JSON text block:

    success    {"output", "sessionId"}
    truncated  {"output", "sessionId", "truncated": true, "error"}
    invalid    {"message": "Invalid request", "errors"}
    failure    {"message": "Error invoking remote agent", "error", "sessionId"}
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent_bridge_contracts.agent import AGENT_DESCRIPTIONS, DEFAULT_AGENT, AgentName
from agent_bridge_contracts.envelope import format_validation_errors
from agent_bridge_contracts.errors import BridgeError, RequestValidationError, StreamTerminatedEarlyError
from agent_bridge_contracts.session import SESSION_ID_PATTERN, generate_session_id

from .client.endpoint import InvocationMode
from .client.invoke import invoke
from .logging_config import configure_logging
from .services.settings.env import load_env

logger = logging.getLogger(__name__)

SERVER_NAME = "agent-bridge"
TOOL_NAME = "remoteAgentProxy"
RESOURCE_PREFIX = "remote-proxy"

app = Server(SERVER_NAME)


class RemoteAgentProxyInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    query: str = Field(min_length=1, description="The question to send to the remote agent.")
    profile: Optional[str] = Field(default=None, description="AWS profile used to sign the request.")
    agent: AgentName = Field(default=DEFAULT_AGENT, description="Which remote agent answers.")
    stack_name: Optional[str] = Field(
        default=None, alias="stackName", description="Stack whose outputs hold the endpoint URLs."
    )
    region: Optional[str] = Field(default=None, description="AWS region of the stack.")
    session_id: Optional[str] = Field(
        default=None,
        alias="sessionId",
        pattern=SESSION_ID_PATTERN.pattern,
        description="Resume an earlier conversation. Omit to start a new one.",
    )
    endpoint_override: Optional[str] = Field(
        default=None, alias="endpointOverride", description="Invoke this URL instead of looking it up."
    )
    mode: InvocationMode = Field(default=InvocationMode.streaming, description="streaming or buffered.")


def _result_text(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


def _invalid(errors: list[str]) -> list[TextContent]:
    return _result_text({"message": "Invalid request", "errors": errors})


def _tool_description() -> str:
    lines = [
        "Ask a remotely hosted AWS agent a question. Pass the returned sessionId on later "
        "calls to continue the same conversation.",
        "",
        "Agents:",
    ]
    lines.extend(f"- {agent.value}: {text}" for agent, text in AGENT_DESCRIPTIONS.items())
    return "\n".join(lines)


def _proxy_input_schema() -> dict[str, Any]:
    return RemoteAgentProxyInput.model_json_schema(by_alias=True)


@app.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name=TOOL_NAME,
            description=_tool_description(),
            inputSchema=_proxy_input_schema(),
        )
    ]


async def remote_agent_proxy(arguments: dict[str, Any]) -> list[TextContent]:
    try:
        args = RemoteAgentProxyInput.model_validate(arguments)
    except ValidationError as e:
        return _invalid(format_validation_errors(e))

    # Generated here so failures can still report which session to resume.
    session_id = args.session_id or generate_session_id()

    try:
        result = await asyncio.to_thread(
            invoke,
            args.query,
            profile=args.profile,
            agent=args.agent,
            target_id=args.stack_name,
            region=args.region,
            session_id=session_id,
            endpoint_override=args.endpoint_override,
            mode=args.mode,
            resource_prefix=RESOURCE_PREFIX,
        )
    except RequestValidationError as e:
        return _invalid(e.errors)
    except StreamTerminatedEarlyError as e:
        logger.warning("mcp.proxy truncated session_id=%s partial_chars=%s", session_id, len(e.partial_output))
        return _result_text(
            {"output": e.partial_output, "sessionId": session_id, "truncated": True, "error": e.to_dict()}
        )
    except BridgeError as e:
        logger.warning("mcp.proxy failed session_id=%s kind=%s", session_id, e.kind.value)
        return _result_text(
            {"message": "Error invoking remote agent", "error": e.to_dict(), "sessionId": session_id}
        )

    return _result_text({"output": result.output, "sessionId": result.session_id})


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name != TOOL_NAME:
        return _result_text({"message": f"Unknown tool: {name}"})
    return await remote_agent_proxy(arguments or {})


async def serve() -> None:
    logger.info("mcp.start server=%s", SERVER_NAME)
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def main() -> None:
    load_env()
    configure_logging(sys.stderr)
    asyncio.run(serve())


if __name__ == "__main__":
    main()
