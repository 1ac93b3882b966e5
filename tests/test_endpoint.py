from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from agent_bridge.client.endpoint import (
    EndpointCache,
    EndpointResolver,
    InvocationMode,
    lookup_stack_output,
    resolve_invocation_endpoint,
)
from agent_bridge_contracts.errors import EndpointFailureReason, EndpointResolutionError, RequestValidationError


class FakeCloudFormation:
    def __init__(self, outputs: dict[str, str] | None = None, error: Exception | None = None) -> None:
        self.outputs = outputs or {}
        self.error = error
        self.calls: list[str] = []

    def describe_stacks(self, *, StackName: str) -> dict[str, Any]:
        self.calls.append(StackName)
        if self.error is not None:
            raise self.error
        return {
            "Stacks": [
                {
                    "StackName": StackName,
                    "Outputs": [{"OutputKey": k, "OutputValue": v} for k, v in self.outputs.items()],
                }
            ]
        }


def _client_error(code: str, message: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "DescribeStacks")


def _resolver_for(fake: FakeCloudFormation) -> EndpointResolver:
    return EndpointResolver(
        lambda target_id, key, region, creds: lookup_stack_output(target_id, key, region, creds, client=fake)
    )


def test_override_skips_lookup_entirely(credentials: Any) -> None:
    calls: list[tuple[str, str]] = []

    def lookup(target_id: str, key: str, region: str, creds: Any) -> str:
        calls.append((target_id, key))
        return "https://should-not-be-used.example"

    endpoint = resolve_invocation_endpoint(
        InvocationMode.streaming,
        target_id="MyStack",
        region="eu-west-1",
        credentials=credentials,
        override="https://override.example/stream",
        resolver=EndpointResolver(lookup),
        cache=EndpointCache(),
    )

    assert calls == []
    assert endpoint.url == "https://override.example/stream"
    assert endpoint.service == "lambda"
    assert endpoint.region == "eu-west-1"


def test_override_must_be_http_url(credentials: Any) -> None:
    with pytest.raises(RequestValidationError):
        resolve_invocation_endpoint(
            InvocationMode.buffered,
            target_id="MyStack",
            region="us-east-1",
            credentials=credentials,
            override="ftp://nope",
            cache=EndpointCache(),
        )


@pytest.mark.parametrize(
    ("mode", "key", "service"),
    [
        (InvocationMode.buffered, "ApiEndpoint", "execute-api"),
        (InvocationMode.streaming, "StreamingFunctionUrlEndpoint", "lambda"),
    ],
)
def test_mode_selects_output_key_and_signing_service(
    credentials: Any, mode: InvocationMode, key: str, service: str
) -> None:
    fake = FakeCloudFormation({key: f"https://{key.lower()}.example/"})

    endpoint = _resolver_for(fake).resolve_endpoint(mode, "MyStack", "us-east-1", credentials)

    assert endpoint.url == f"https://{key.lower()}.example/"
    assert endpoint.service == service
    assert fake.calls == ["MyStack"]


def test_missing_stack_is_not_found(credentials: Any) -> None:
    fake = FakeCloudFormation(error=_client_error("ValidationError", "Stack with id MyStack does not exist"))

    with pytest.raises(EndpointResolutionError) as info:
        _resolver_for(fake).resolve_endpoint(InvocationMode.buffered, "MyStack", "us-east-1", credentials)

    assert info.value.not_found
    assert info.value.context["reason"] == "NOT_FOUND"


def test_missing_output_is_not_found(credentials: Any) -> None:
    fake = FakeCloudFormation({"SomethingElse": "x"})

    with pytest.raises(EndpointResolutionError) as info:
        _resolver_for(fake).resolve_endpoint(InvocationMode.streaming, "MyStack", "us-east-1", credentials)

    assert info.value.reason is EndpointFailureReason.not_found
    assert info.value.context["output_key"] == "StreamingFunctionUrlEndpoint"


@pytest.mark.parametrize(
    "error",
    [
        _client_error("AccessDenied", "not authorized to perform cloudformation:DescribeStacks"),
        EndpointConnectionError(endpoint_url="https://cloudformation.us-east-1.amazonaws.com"),
    ],
)
def test_lookup_failures_are_transport_failures(credentials: Any, error: Exception) -> None:
    fake = FakeCloudFormation(error=error)

    with pytest.raises(EndpointResolutionError) as info:
        _resolver_for(fake).resolve_endpoint(InvocationMode.buffered, "MyStack", "us-east-1", credentials)

    assert info.value.reason is EndpointFailureReason.transport_failure
    assert not info.value.not_found


def test_cache_memoizes_per_mode_target_and_region(credentials: Any) -> None:
    fake = FakeCloudFormation({"ApiEndpoint": "https://api.example/", "StreamingFunctionUrlEndpoint": "https://s/"})
    cache = EndpointCache()
    resolver = _resolver_for(fake)

    def resolve(mode: InvocationMode, region: str = "us-east-1") -> Any:
        return resolve_invocation_endpoint(
            mode, target_id="MyStack", region=region, credentials=credentials, resolver=resolver, cache=cache
        )

    first = resolve(InvocationMode.buffered)
    again = resolve(InvocationMode.buffered)
    assert first is again
    assert len(fake.calls) == 1

    resolve(InvocationMode.streaming)
    resolve(InvocationMode.buffered, region="eu-west-1")
    assert len(fake.calls) == 3


def test_failed_resolution_is_not_cached(credentials: Any) -> None:
    fake = FakeCloudFormation({})
    cache = EndpointCache()

    for _ in range(2):
        with pytest.raises(EndpointResolutionError):
            resolve_invocation_endpoint(
                InvocationMode.buffered,
                target_id="MyStack",
                region="us-east-1",
                credentials=credentials,
                resolver=_resolver_for(fake),
                cache=cache,
            )

    assert len(fake.calls) == 2
    assert cache.get(InvocationMode.buffered, "MyStack", "us-east-1") is None
