from __future__ import annotations

import logging
import os
from typing import Final, TextIO


LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Library loggers that would otherwise log every request and retry.
_QUIET_AT_INFO: Final[tuple[str, ...]] = ("openai", "httpx", "httpcore", "urllib3", "botocore", "boto3")


def _level_from_env() -> int:
    name = os.getenv("LOG_LEVEL", "").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(stream: TextIO | None = None) -> None:
    """Set up console logging for the API, the Lambda handler, the CLI and the MCP server.

    INFO shows one line per lookup and per invocation phase. Credentials,
    signatures, queries and answers are never logged, nor are stream fragments.
    Set LOG_LEVEL=DEBUG|INFO|WARNING|ERROR to change the level. Pass `stream`
    to log somewhere other than stderr (the MCP server owns stdout).
    """

    level = _level_from_env()

    # Applies even when a handler already exists (uvicorn, the Lambda runtime).
    if level >= logging.INFO:
        for name in _QUIET_AT_INFO:
            logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=stream)
