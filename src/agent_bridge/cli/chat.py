"""Interactive chat with the remotely hosted agents.

Examples:
    agent-bridge-chat --agent s3
    agent-bridge-chat -q "Which stacks failed today?" --agent cfn --no-streaming
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from agent_bridge_contracts.agent import DEFAULT_AGENT, AgentName, resolve_agent_alias
from agent_bridge_contracts.errors import BridgeError, StreamTerminatedEarlyError, TransportError
from agent_bridge_contracts.session import derive_resource_id, derive_thread_id, is_valid_session_id

from ..client.credentials import resolve_credentials
from ..client.endpoint import InvocationMode, default_region, default_target_id, resolve_invocation_endpoint
from ..client.invoke import invoke
from ..logging_config import configure_logging
from ..services.settings.env import load_env
from .commands import CommandType, help_lines, parse_command

app = typer.Typer(help="Chat with remote AWS agents over signed HTTP", add_completion=False)
console = Console()

logger = logging.getLogger(__name__)


@dataclass
class ChatState:
    session_id: str
    agent: AgentName
    streaming: bool
    profile: str | None
    region: str
    target_id: str
    endpoint: str | None = None
    buffered_endpoint: str | None = None
    streaming_available: bool = True
    buffered_available: bool = True


def render_error(err: BridgeError) -> None:
    console.print(f"[bold red]{err.kind.value}:[/bold red] {err.message}")
    if isinstance(err, TransportError) and err.raw_body:
        console.print(Panel(err.raw_body, title=f"HTTP {err.status_code}", border_style="red"))
    logger.debug("invoke.error detail=%s", err.to_dict())


def _check_endpoints(state: ChatState) -> None:
    """Resolve endpoints once up front; the memo makes later invocations lookup-free."""

    credentials = resolve_credentials(state.profile)
    for mode, override in (
        (InvocationMode.streaming, state.endpoint),
        (InvocationMode.buffered, state.buffered_endpoint),
    ):
        try:
            resolve_invocation_endpoint(
                mode,
                target_id=state.target_id,
                region=state.region,
                credentials=credentials,
                override=override,
            )
        except BridgeError as e:
            logger.info("chat.endpoint unavailable mode=%s error=%s", mode.value, e.to_dict())
            if mode is InvocationMode.streaming:
                state.streaming_available = False
            else:
                state.buffered_available = False

    if not state.streaming_available and state.streaming:
        console.print("[yellow]Streaming endpoint not found; falling back to buffered responses.[/yellow]")
        state.streaming = False


def ask(state: ChatState, query: str) -> None:
    """Send one query and render the answer. Errors are reported, never raised."""

    mode = InvocationMode.streaming if state.streaming else InvocationMode.buffered
    common = dict(
        profile=state.profile,
        agent=state.agent,
        target_id=state.target_id,
        region=state.region,
        session_id=state.session_id,
        endpoint_override=state.endpoint if state.streaming else state.buffered_endpoint,
        mode=mode,
    )
    try:
        if state.streaming:
            console.print(f"[bold cyan]{state.agent.value}[/bold cyan]: ", end="")
            invoke(
                query,
                on_fragment=lambda f: console.print(f, end="", markup=False, highlight=False),
                **common,
            )
            console.print()
        else:
            with console.status(f"[bold cyan]{state.agent.value} is thinking...", spinner="dots"):
                result = invoke(query, **common)
            console.print(Panel(Markdown(result.output), title=result.agent, border_style="green"))
    except StreamTerminatedEarlyError as e:
        console.print()
        console.print(f"[yellow]Stream ended early; the answer above is truncated ({len(e.partial_output)} chars).[/yellow]")
    except BridgeError as e:
        console.print()
        render_error(e)


def _print_session(state: ChatState) -> None:
    console.print(f"session:  {state.session_id}")
    console.print(f"thread:   {derive_thread_id(state.agent, state.session_id)}")
    console.print(f"resource: {derive_resource_id(state.session_id)}")
    console.print(f"agent:    {state.agent.value}  streaming: {state.streaming}")


def set_streaming(state: ChatState, wanted: bool) -> None:
    if wanted and not state.streaming_available:
        console.print("[yellow]No streaming endpoint available.[/yellow]")
    elif not wanted and not state.buffered_available:
        console.print("[yellow]No buffered endpoint available.[/yellow]")
    else:
        state.streaming = wanted
        console.print(f"Streaming {'on' if state.streaming else 'off'}.")


def run_loop(state: ChatState) -> None:
    console.print(
        Panel(
            f"Agent: [bold]{state.agent.value}[/bold]   Session: {state.session_id}\n"
            "Type /help for commands, /quit to leave.",
            title="Agent Bridge",
            border_style="blue",
        )
    )
    while True:
        try:
            line = Prompt.ask(f"[bold]{state.agent.value}[/bold]")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return

        cmd = parse_command(line)
        if cmd.error:
            console.print(f"[red]{cmd.error}[/red]")
            continue

        if cmd.type is CommandType.empty:
            continue
        if cmd.type is CommandType.quit:
            return
        if cmd.type is CommandType.help:
            for text in help_lines():
                console.print(text, markup=False, highlight=False)
        elif cmd.type is CommandType.session:
            _print_session(state)
        elif cmd.type is CommandType.switch_agent and cmd.agent is not None:
            state.agent = cmd.agent
            console.print(f"Switched to [bold]{cmd.agent.value}[/bold] (new memory thread).")
        elif cmd.type is CommandType.toggle_streaming:
            set_streaming(state, not state.streaming if cmd.enabled is None else cmd.enabled)
        elif cmd.type in (CommandType.capabilities, CommandType.query):
            ask(state, cmd.text)


@app.command()
def chat(
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Streaming endpoint URL (skips stack lookup)."),
    buffered_endpoint: Optional[str] = typer.Option(None, "--buffered-endpoint", help="Buffered endpoint URL."),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region (default: AWS_REGION, else us-east-1)."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name."),
    session_id: Optional[str] = typer.Option(None, "--session-id", "-s", help="Resume an existing session."),
    stack_name: Optional[str] = typer.Option(
        None, "--stack-name", help="Stack holding the endpoint outputs (default: AGENT_BRIDGE_STACK_NAME, else AgentBridgeStack)."
    ),
    agent: str = typer.Option(DEFAULT_AGENT.value, "--agent", "-a", help="Agent name or alias."),
    streaming: bool = typer.Option(True, "--streaming/--no-streaming", help="Stream answers as they arrive."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Send one query and exit."),
) -> None:
    """Chat with a remote agent; memory is kept per agent and session."""

    load_env()
    configure_logging()
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    agent_name = resolve_agent_alias(agent)
    if agent_name is None:
        console.print(f"[red]Unknown agent: {agent}[/red]")
        raise typer.Exit(code=2)

    if session_id and not is_valid_session_id(session_id):
        console.print("[red]--session-id must be 1-128 characters of letters, digits, _ or -[/red]")
        raise typer.Exit(code=2)

    state = ChatState(
        session_id=session_id or f"chat-{int(time.time() * 1000)}",
        agent=agent_name,
        streaming=streaming,
        profile=profile,
        region=region or default_region(),
        target_id=stack_name or default_target_id(),
        endpoint=endpoint,
        buffered_endpoint=buffered_endpoint,
    )

    try:
        _check_endpoints(state)
    except BridgeError as e:
        render_error(e)
        raise typer.Exit(code=1)

    if not state.streaming_available and not state.buffered_available:
        console.print("[bold red]No invocation endpoint could be resolved.[/bold red]")
        raise typer.Exit(code=1)

    if query:
        ask(state, query)
        return
    run_loop(state)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
