from __future__ import annotations

from typing import Any

from typer.testing import CliRunner

from agent_bridge.client.credentials import Credentials
from agent_bridge.client.invoke import InvokeResult
from agent_bridge_contracts.errors import StreamTerminatedEarlyError, TransportError


runner = CliRunner()

ENDPOINTS = ["-e", "https://fn.example/", "--buffered-endpoint", "https://api.example/invoke"]


def _patch(monkeypatch: Any, fake_invoke: Any) -> None:
    from agent_bridge.cli import chat

    monkeypatch.setattr(chat, "resolve_credentials", lambda profile: Credentials("AKID", "secret"))
    monkeypatch.setattr(chat, "invoke", fake_invoke)


def test_one_shot_buffered_query(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    seen: dict[str, Any] = {}

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        seen.update(kwargs, query=query)
        return InvokeResult(output="Two stacks failed.", session_id=kwargs["session_id"], agent="cloudformationAgent", thread_id="t")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(app, [*ENDPOINTS, "--agent", "cfn", "--no-streaming", "-s", "abc", "-q", "Which stacks failed?"])

    assert result.exit_code == 0, result.output
    assert "Two stacks failed." in result.output
    assert seen["query"] == "Which stacks failed?"
    assert seen["agent"].value == "cloudformationAgent"
    assert seen["endpoint_override"] == "https://api.example/invoke"
    assert seen["mode"].value == "buffered"


def test_one_shot_streaming_prints_fragments(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        for fragment in ["Hel", "lo ", "World"]:
            kwargs["on_fragment"](fragment)
        return InvokeResult(output="Hello World", session_id="abc", agent="awsAgent", thread_id="t")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(app, [*ENDPOINTS, "-q", "hi"])

    assert result.exit_code == 0, result.output
    assert "Hello World" in result.output


def test_truncated_stream_is_reported_not_raised(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        kwargs["on_fragment"]("Hel")
        raise StreamTerminatedEarlyError("closed", partial_output="Hel")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(app, [*ENDPOINTS, "-q", "hi"])

    assert result.exit_code == 0
    assert "truncated" in result.output


def test_transport_errors_are_rendered(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        raise TransportError("Remote agent returned HTTP 403", status_code=403, raw_body="Forbidden")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(app, [*ENDPOINTS, "--no-streaming", "-q", "hi"])

    assert result.exit_code == 0
    assert "TransportError" in result.output
    assert "Forbidden" in result.output


def test_interactive_loop_switches_agent_and_quits(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    agents: list[str] = []

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        agents.append(kwargs["agent"].value)
        return InvokeResult(output="ok", session_id="abc", agent=kwargs["agent"].value, thread_id="t")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(app, [*ENDPOINTS, "--no-streaming"], input="first\n/agent s3\nsecond\n/quit\n")

    assert result.exit_code == 0, result.output
    assert agents == ["awsAgent", "s3Agent"]


def test_unknown_agent_exits_with_usage_error() -> None:
    from agent_bridge.cli.chat import app

    result = runner.invoke(app, [*ENDPOINTS, "--agent", "storage", "-q", "hi"])

    assert result.exit_code == 2
    assert "Unknown agent" in result.output


def test_unsafe_session_id_exits_with_usage_error() -> None:
    from agent_bridge.cli.chat import app

    result = runner.invoke(app, [*ENDPOINTS, "-s", "has::colons", "-q", "hi"])

    assert result.exit_code == 2


def test_stack_and_region_default_to_dotenv_values(monkeypatch: Any, tmp_path: Any) -> None:
    from agent_bridge.cli import chat

    (tmp_path / ".env").write_text("AGENT_BRIDGE_STACK_NAME=FromDotenv\nAWS_REGION=eu-west-1\n", encoding="utf-8")
    for name in ("AGENT_BRIDGE_STACK_NAME", "AWS_REGION"):
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)

    lookups: list[tuple[str, str]] = []

    def fake_resolve(mode: Any, *, target_id: str, region: str, credentials: Any, override: Any) -> Any:
        lookups.append((target_id, region))
        return None

    seen: dict[str, Any] = {}

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        seen.update(kwargs)
        return InvokeResult(output="ok", session_id="abc", agent="awsAgent", thread_id="t")

    _patch(monkeypatch, fake_invoke)
    monkeypatch.setattr(chat, "resolve_invocation_endpoint", fake_resolve)

    result = runner.invoke(chat.app, ["--no-streaming", "-q", "hi"])

    assert result.exit_code == 0, result.output
    assert lookups == [("FromDotenv", "eu-west-1"), ("FromDotenv", "eu-west-1")]
    assert seen["target_id"] == "FromDotenv"
    assert seen["region"] == "eu-west-1"


def test_streaming_command_sets_mode_explicitly(monkeypatch: Any) -> None:
    from agent_bridge.cli.chat import app

    modes: list[str] = []

    def fake_invoke(query: str, **kwargs: Any) -> InvokeResult:
        modes.append(kwargs["mode"].value)
        return InvokeResult(output="ok", session_id="abc", agent="awsAgent", thread_id="t")

    _patch(monkeypatch, fake_invoke)

    result = runner.invoke(
        app, [*ENDPOINTS, "--no-streaming"], input="/streaming off\none\n/streaming on\ntwo\n/streaming\nthree\n/quit\n"
    )

    assert result.exit_code == 0, result.output
    assert modes == ["buffered", "streaming", "buffered"]
