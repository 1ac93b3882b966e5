"""Wire contracts shared by the bridge client and the hosted agents."""

from .api_version import AGENT_NAMES_VERSION, API_VERSION
from .agent import (
    AGENT_ALIASES,
    AGENT_DESCRIPTIONS,
    DEFAULT_AGENT,
    SPECIALIST_AGENTS,
    AgentName,
    parse_agent_name,
    resolve_agent_alias,
)
from .envelope import (
    InternalErrorResponse,
    InvalidRequestResponse,
    InvokeResponse,
    RequestEnvelope,
    parse_envelope,
)
from .errors import (
    BridgeError,
    CredentialsError,
    EndpointFailureReason,
    EndpointResolutionError,
    ErrorKind,
    RequestValidationError,
    SigningError,
    StreamTerminatedEarlyError,
    TransportError,
)
from .session import (
    THREAD_SEPARATOR,
    SessionContext,
    derive_resource_id,
    derive_thread_id,
    generate_session_id,
    split_thread_id,
)

__all__ = [
    "AGENT_ALIASES",
    "AGENT_DESCRIPTIONS",
    "AGENT_NAMES_VERSION",
    "API_VERSION",
    "DEFAULT_AGENT",
    "SPECIALIST_AGENTS",
    "AgentName",
    "parse_agent_name",
    "resolve_agent_alias",
    "InternalErrorResponse",
    "InvalidRequestResponse",
    "InvokeResponse",
    "RequestEnvelope",
    "parse_envelope",
    "BridgeError",
    "CredentialsError",
    "EndpointFailureReason",
    "EndpointResolutionError",
    "ErrorKind",
    "RequestValidationError",
    "SigningError",
    "StreamTerminatedEarlyError",
    "TransportError",
    "THREAD_SEPARATOR",
    "SessionContext",
    "derive_resource_id",
    "derive_thread_id",
    "generate_session_id",
    "split_thread_id",
]
