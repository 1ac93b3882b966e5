"""Endpoint resolution.

An explicit override always wins and skips the lookup entirely. Without one,
the invocation URL is read from the outputs of a CloudFormation stack:

- buffered:  `ApiEndpoint` (API Gateway, signed for `execute-api`)
- streaming: `StreamingFunctionUrlEndpoint` (Lambda Function URL, signed for `lambda`)

The lookup is a read-only describe call and is not deduplicated by the
resolver. Memoization lives in `EndpointCache`, owned by the caller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Final
from urllib.parse import urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from agent_bridge_contracts.errors import (
    EndpointFailureReason,
    EndpointResolutionError,
    RequestValidationError,
)

from .credentials import Credentials

logger = logging.getLogger(__name__)


FALLBACK_TARGET_ID: Final[str] = "AgentBridgeStack"
FALLBACK_REGION: Final[str] = "us-east-1"


# Read on every call so values from a .env loaded at startup apply.
def default_target_id() -> str:
    return os.getenv("AGENT_BRIDGE_STACK_NAME") or FALLBACK_TARGET_ID


def default_region() -> str:
    return os.getenv("AWS_REGION") or FALLBACK_REGION


class InvocationMode(str, Enum):
    buffered = "buffered"
    streaming = "streaming"


OUTPUT_KEYS: Final[dict[InvocationMode, str]] = {
    InvocationMode.buffered: "ApiEndpoint",
    InvocationMode.streaming: "StreamingFunctionUrlEndpoint",
}

SIGNING_SERVICES: Final[dict[InvocationMode, str]] = {
    InvocationMode.buffered: "execute-api",
    InvocationMode.streaming: "lambda",
}


@dataclass(frozen=True)
class InvocationEndpoint:
    mode: InvocationMode
    url: str
    region: str
    service: str


StackOutputLookup = Callable[[str, str, str, Credentials], "str | None"]


def _cloudformation_client(region: str, credentials: Credentials) -> Any:
    return boto3.client(
        "cloudformation",
        region_name=region,
        aws_access_key_id=credentials.access_key,
        aws_secret_access_key=credentials.secret_key,
        aws_session_token=credentials.session_token,
        config=Config(retries={"max_attempts": 3, "mode": "standard"}),
    )


def lookup_stack_output(
    target_id: str,
    output_key: str,
    region: str,
    credentials: Credentials,
    *,
    client: Any | None = None,
) -> str | None:
    """Return the value of `output_key` on stack `target_id`, or None if absent."""

    cfn = client or _cloudformation_client(region, credentials)
    resp = cfn.describe_stacks(StackName=target_id)
    for stack in resp.get("Stacks") or []:
        for output in stack.get("Outputs") or []:
            if output.get("OutputKey") == output_key:
                return output.get("OutputValue")
    return None


def _is_missing_stack(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    return error.get("Code") == "ValidationError" and "does not exist" in str(error.get("Message", ""))


class EndpointResolver:
    def __init__(self, lookup: StackOutputLookup = lookup_stack_output) -> None:
        self._lookup = lookup

    def resolve(self, target_id: str, output_key: str, region: str, credentials: Credentials) -> str:
        """Look up one stack output.

        Raises:
            EndpointResolutionError: NOT_FOUND when the stack or output is absent,
                TRANSPORT_FAILURE when the describe call itself failed.
        """

        def fail(message: str, reason: EndpointFailureReason) -> EndpointResolutionError:
            return EndpointResolutionError(
                message, reason=reason, target_id=target_id, output_key=output_key, region=region
            )

        logger.info("endpoint.lookup target=%s output_key=%s region=%s", target_id, output_key, region)
        try:
            value = self._lookup(target_id, output_key, region, credentials)
        except ClientError as e:
            if _is_missing_stack(e):
                raise fail(f"Stack {target_id!r} does not exist in {region}", EndpointFailureReason.not_found) from e
            raise fail(f"Stack lookup failed: {e}", EndpointFailureReason.transport_failure) from e
        except BotoCoreError as e:
            raise fail(f"Stack lookup failed: {e}", EndpointFailureReason.transport_failure) from e

        if not value:
            raise fail(
                f"Output {output_key!r} not found on stack {target_id!r}", EndpointFailureReason.not_found
            )
        return value

    def resolve_endpoint(
        self, mode: InvocationMode, target_id: str, region: str, credentials: Credentials
    ) -> InvocationEndpoint:
        url = self.resolve(target_id, OUTPUT_KEYS[mode], region, credentials)
        return InvocationEndpoint(mode=mode, url=url, region=region, service=SIGNING_SERVICES[mode])


class EndpointCache:
    """Process-scoped memo of resolved endpoints.

    Each key is written once on first successful resolution and read without
    locking afterwards. Failed resolutions are not stored.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[InvocationMode, str, str], InvocationEndpoint] = {}

    def get(self, mode: InvocationMode, target_id: str, region: str) -> InvocationEndpoint | None:
        return self._entries.get((mode, target_id, region))

    def get_or_resolve(
        self,
        mode: InvocationMode,
        target_id: str,
        region: str,
        resolve: Callable[[], InvocationEndpoint],
    ) -> InvocationEndpoint:
        key = (mode, target_id, region)
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        return self._entries.setdefault(key, resolve())

    def clear(self) -> None:
        self._entries.clear()


ENDPOINT_CACHE = EndpointCache()


def endpoint_from_override(mode: InvocationMode, url: str, region: str) -> InvocationEndpoint:
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise RequestValidationError([f"Endpoint override must be an http(s) URL: {url!r}"])
    return InvocationEndpoint(mode=mode, url=url, region=region, service=SIGNING_SERVICES[mode])


def resolve_invocation_endpoint(
    mode: InvocationMode,
    *,
    target_id: str,
    region: str,
    credentials: Credentials,
    override: str | None = None,
    resolver: EndpointResolver | None = None,
    cache: EndpointCache = ENDPOINT_CACHE,
) -> InvocationEndpoint:
    if override:
        return endpoint_from_override(mode, override, region)

    active = resolver or EndpointResolver()
    return cache.get_or_resolve(
        mode,
        target_id,
        region,
        lambda: active.resolve_endpoint(mode, target_id, region, credentials),
    )
