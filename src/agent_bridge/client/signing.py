"""SigV4 request signing.

A pure function of its inputs and the clock: identical inputs at a fixed
timestamp always produce the identical signature. The `host` header must be
present explicitly because some execution hosts strip it before forwarding.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping

from botocore.auth import SIGV4_TIMESTAMP, SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import ReadOnlyCredentials
from botocore.exceptions import BotoCoreError

from agent_bridge_contracts.errors import SigningError

from .credentials import Credentials


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SignedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes


class _ClockedSigV4Auth(SigV4Auth):
    """SigV4Auth that takes its timestamp from an injected clock."""

    def __init__(self, credentials: ReadOnlyCredentials, service_name: str, region_name: str, clock: Clock) -> None:
        super().__init__(credentials, service_name, region_name)
        self._clock = clock

    def add_auth(self, request: AWSRequest) -> None:
        request.context["timestamp"] = self._clock().strftime(SIGV4_TIMESTAMP)
        self._modify_request_before_signing(request)
        canonical_request = self.canonical_request(request)
        string_to_sign = self.string_to_sign(request, canonical_request)
        signature = self.signature(string_to_sign, request)
        self._inject_signature_to_request(request, signature)


def sign_request(
    *,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes,
    region: str,
    service: str,
    credentials: Credentials,
    clock: Clock | None = None,
) -> SignedRequest:
    """Return the request with Authorization, X-Amz-Date and (if any) X-Amz-Security-Token added."""

    if not any(k.lower() == "host" for k in headers):
        raise SigningError("Request headers must include an explicit 'host' header", context={"url": url})

    request = AWSRequest(method=method.upper(), url=url, data=body, headers=dict(headers))
    signer = _ClockedSigV4Auth(
        ReadOnlyCredentials(credentials.access_key, credentials.secret_key, credentials.session_token),
        service,
        region,
        clock or utc_now,
    )
    try:
        signer.add_auth(request)
    except (BotoCoreError, ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign request: {e}", context={"url": url, "service": service}) from e

    return SignedRequest(
        method=request.method,
        url=url,
        headers={k: v for k, v in request.headers.items()},
        body=body,
    )
