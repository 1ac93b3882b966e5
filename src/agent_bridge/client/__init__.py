"""Client side of the bridge: credentials, endpoint resolution, signing and transports."""

from .endpoint import InvocationEndpoint, InvocationMode
from .invoke import InvokeResult, invoke

__all__ = ["InvocationEndpoint", "InvocationMode", "InvokeResult", "invoke"]
