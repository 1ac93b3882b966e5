"""Tagged error taxonomy shared by the client, the server and the tool boundaries.

Every error carries an explicit `kind` discriminant and serializes to
`{kind, message, context}`. Boundaries branch on the type (or `kind`), never on
the rendered message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    validation = "ValidationError"
    credentials = "CredentialsError"
    endpoint_resolution = "EndpointResolutionError"
    signing = "SigningError"
    transport = "TransportError"
    stream_terminated_early = "StreamTerminatedEarlyError"


class EndpointFailureReason(str, Enum):
    not_found = "NOT_FOUND"
    transport_failure = "TRANSPORT_FAILURE"


class BridgeError(Exception):
    """Base class for every error that crosses a bridge layer."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "context": dict(self.context)}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class RequestValidationError(BridgeError):
    """Malformed envelope, unknown agent or empty query. Never retried."""

    kind = ErrorKind.validation

    def __init__(self, errors: list[str], message: str = "Invalid request") -> None:
        self.errors = [e for e in errors if e] or [message]
        super().__init__(message, context={"errors": list(self.errors)})

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}: {'; '.join(self.errors)}"


class CredentialsError(BridgeError):
    kind = ErrorKind.credentials

    def __init__(self, message: str, *, profile: str | None = None) -> None:
        super().__init__(message, context={"profile": profile})
        self.profile = profile


class EndpointResolutionError(BridgeError):
    kind = ErrorKind.endpoint_resolution

    def __init__(
        self,
        message: str,
        *,
        reason: EndpointFailureReason,
        target_id: str,
        output_key: str,
        region: str,
    ) -> None:
        super().__init__(
            message,
            context={
                "reason": reason.value,
                "target_id": target_id,
                "output_key": output_key,
                "region": region,
            },
        )
        self.reason = reason

    @property
    def not_found(self) -> bool:
        return self.reason is EndpointFailureReason.not_found


class SigningError(BridgeError):
    kind = ErrorKind.signing


class TransportError(BridgeError):
    """Connection failure or non-2xx response."""

    kind = ErrorKind.transport

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        raw_body: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message,
            context={"status_code": status_code, "raw_body": raw_body, "url": url},
        )
        self.status_code = status_code
        self.raw_body = raw_body


class StreamTerminatedEarlyError(BridgeError):
    """The connection closed mid-stream without a completion signal.

    The fragments delivered so far are kept on `partial_output`.
    """

    kind = ErrorKind.stream_terminated_early

    def __init__(self, message: str, *, partial_output: str, url: str | None = None) -> None:
        super().__init__(
            message,
            context={"truncated": True, "partial_chars": len(partial_output), "url": url},
        )
        self.partial_output = partial_output
        self.truncated = True
