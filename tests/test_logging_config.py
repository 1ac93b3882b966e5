from __future__ import annotations

import logging
from typing import Any, Iterator

import pytest

from agent_bridge.logging_config import configure_logging


@pytest.fixture
def preconfigured_root() -> Iterator[logging.Logger]:
    """Root logger that already has a handler, as under the Lambda runtime."""

    root = logging.getLogger()
    handler = logging.NullHandler()
    saved_root = root.level
    saved = {name: logging.getLogger(name).level for name in ("httpx", "botocore", "openai")}
    root.addHandler(handler)
    try:
        yield root
    finally:
        root.removeHandler(handler)
        root.setLevel(saved_root)
        for name, level in saved.items():
            logging.getLogger(name).setLevel(level)


def test_library_loggers_are_quieted_when_root_is_already_configured(
    monkeypatch: Any, preconfigured_root: logging.Logger
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    for name in ("httpx", "botocore", "openai"):
        logging.getLogger(name).setLevel(logging.NOTSET)

    configure_logging()

    assert preconfigured_root.level == logging.INFO
    for name in ("httpx", "botocore", "openai"):
        assert logging.getLogger(name).level == logging.WARNING


def test_debug_leaves_library_loggers_alone(monkeypatch: Any, preconfigured_root: logging.Logger) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    logging.getLogger("httpx").setLevel(logging.NOTSET)

    configure_logging()

    assert preconfigured_root.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.NOTSET
