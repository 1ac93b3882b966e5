"""API Gateway (REST, proxy integration) handler for buffered invocations."""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from typing import Any

from .logging_config import configure_logging
from .services.invocation import run_buffered
from .services.settings.env import load_env

load_env()
configure_logging()

logger = logging.getLogger(__name__)


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _event_body(event: dict[str, Any]) -> bytes | str | None:
    body = event.get("body")
    if body is None:
        return None
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body)
        except (binascii.Error, ValueError):
            # Leave undecodable payloads to envelope validation.
            return body
    return body


def buffered_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    request_id = getattr(context, "aws_request_id", None)
    logger.info("lambda.buffered start request_id=%s", request_id)

    status_code, body = asyncio.run(run_buffered(_event_body(event or {})))

    logger.info("lambda.buffered end request_id=%s status=%s", request_id, status_code)
    return _response(status_code, body)
