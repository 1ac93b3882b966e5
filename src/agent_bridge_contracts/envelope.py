"""Wire envelope and response contracts.

Request body (both transports):

    {"query": str, "threadId": str, "resourceId": str, "agent": AgentName}

The envelope is validated at the trust boundary, before anything reaches the
dispatch directory.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .agent import DEFAULT_AGENT, AgentName
from .errors import RequestValidationError
from .session import SessionContext


class RequestEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: str
    thread_id: str = Field(alias="threadId", min_length=1)
    resource_id: str = Field(alias="resourceId", min_length=1)
    agent: AgentName = DEFAULT_AGENT

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Query cannot be empty")
        return v

    @model_validator(mode="after")
    def _thread_id_matches_agent(self) -> "RequestEnvelope":
        SessionContext.from_wire(self.agent, self.thread_id, self.resource_id)
        return self

    def session_context(self) -> SessionContext:
        return SessionContext.from_wire(self.agent, self.thread_id, self.resource_id)

    def to_wire(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def for_session(cls, query: str, context: SessionContext) -> "RequestEnvelope":
        # The bare session id travels on the wire; the server re-derives the namespaced thread.
        return cls(
            query=query,
            threadId=context.session_id,
            resourceId=context.resource_id,
            agent=context.agent_name,
        )


class InvokeResponse(BaseModel):
    message: str
    agent: str


class InvalidRequestResponse(BaseModel):
    message: Literal["Invalid request"] = "Invalid request"
    errors: list[str] = Field(default_factory=list)


class InternalErrorResponse(BaseModel):
    message: Literal["Internal Server Error"] = "Internal Server Error"
    error: str


def format_validation_errors(exc: ValidationError) -> list[str]:
    out: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = str(err.get("msg", "invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        out.append(f"{loc}: {msg}" if loc else msg)
    return out


def parse_envelope(raw: bytes | str | dict[str, Any] | None) -> RequestEnvelope:
    """Decode and validate a request body.

    Raises:
        RequestValidationError: for a missing body, invalid JSON or an invalid envelope.
    """

    if raw is None or (isinstance(raw, (bytes, str)) and not raw.strip()):
        raise RequestValidationError(["Missing request body"])

    if isinstance(raw, (bytes, str)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RequestValidationError(["Invalid JSON in request body"]) from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise RequestValidationError(["Request body must be a JSON object"])

    try:
        return RequestEnvelope.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(format_validation_errors(e)) from e
