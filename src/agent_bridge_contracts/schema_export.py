"""Schema export helpers.

Used by docs and non-Python callers to snapshot the wire contracts.
"""

from __future__ import annotations

import json
from typing import Any

from .api_version import AGENT_NAMES_VERSION, API_VERSION
from .envelope import InternalErrorResponse, InvalidRequestResponse, InvokeResponse, RequestEnvelope


def export_json_schema() -> dict[str, Any]:
    """Return a single bundled JSON schema for the public contract models."""

    return {
        "title": "agent-bridge-contracts",
        "api_version": API_VERSION,
        "agent_names_version": AGENT_NAMES_VERSION,
        "models": {
            "RequestEnvelope": RequestEnvelope.model_json_schema(by_alias=True),
            "InvokeResponse": InvokeResponse.model_json_schema(),
            "InvalidRequestResponse": InvalidRequestResponse.model_json_schema(),
            "InternalErrorResponse": InternalErrorResponse.model_json_schema(),
        },
    }


def to_json(schema: dict[str, Any], *, indent: int = 2) -> str:
    """Serialize a schema dict to JSON."""

    return json.dumps(schema, indent=indent, sort_keys=True)
