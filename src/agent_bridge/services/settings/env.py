from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


def _repo_root() -> Path:
    # src/agent_bridge/services/settings/env.py -> repo root is 4 parents up
    return Path(__file__).resolve().parents[4]


def load_env() -> None:
    """Load local .env files if present.

    This is a dev convenience so the server, CLI and MCP proxy can be started
    without manually exporting variables. In production (Lambda, containers),
    prefer real environment variables.

    Load order (later does NOT override existing env vars):
    1) <repo_root>/.env
    2) <repo_root>/.env.local
    3) ./.env in the current working directory
    """

    repo_root = _repo_root()

    load_dotenv(dotenv_path=repo_root / ".env", override=False)
    load_dotenv(dotenv_path=repo_root / ".env.local", override=False)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
