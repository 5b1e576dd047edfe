from __future__ import annotations

import time

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError
from layer_balancer.aws.retry import (
    DeterministicExponentialBackoff,
    is_retryable_aws_error,
    retrying,
)


def _client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "ListLayerVersions",
    )


@pytest.mark.parametrize(
    "exc",
    [
        EndpointConnectionError(endpoint_url="https://lambda.us-east-1.amazonaws.com"),
        ReadTimeoutError(endpoint_url="https://lambda.us-east-1.amazonaws.com"),
        _client_error("TooManyRequestsException", 429),
        _client_error("ThrottlingException", 400),
        _client_error("InternalFailure", 503),
    ],
)
def test_retryable_errors(exc: Exception) -> None:
    assert is_retryable_aws_error(exc)


@pytest.mark.parametrize(
    "exc",
    [
        _client_error("ResourceNotFoundException", 404),
        _client_error("AccessDeniedException", 403),
        ValueError("boom"),
    ],
)
def test_non_retryable_errors(exc: Exception) -> None:
    assert not is_retryable_aws_error(exc)


class _State:
    def __init__(self, attempt_number: int) -> None:
        self.attempt_number = attempt_number


def test_backoff_is_capped() -> None:
    wait = DeterministicExponentialBackoff(base=0.25, cap=1.0)
    assert [wait(_State(n)) for n in range(1, 6)] == [0.25, 0.5, 1.0, 1.0, 1.0]


def test_retrying_stops_at_attempt_cap() -> None:
    calls = []

    def flaky():
        calls.append(1)
        raise _client_error("TooManyRequestsException", 429)

    with pytest.raises(ClientError):
        retrying(operation="ListLayerVersions", max_attempts=5, cap=0)(flaky)

    assert len(calls) == 5


def test_retrying_returns_first_success() -> None:
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise EndpointConnectionError(endpoint_url="https://lambda.us-east-1.amazonaws.com")
        return "ok"

    assert retrying(operation="ListLayerVersions", cap=0)(flaky) == "ok"
    assert len(calls) == 2


def test_retrying_deadline_stops_before_attempt_cap() -> None:
    calls = []

    def slow():
        calls.append(1)
        time.sleep(0.2)
        raise ReadTimeoutError(endpoint_url="https://lambda.us-east-1.amazonaws.com")

    t0 = time.monotonic()
    with pytest.raises(ReadTimeoutError):
        retrying(operation="GetLayerVersionByArn", max_attempts=5, cap=0, deadline=0.3)(slow)

    assert len(calls) == 2
    assert time.monotonic() - t0 < 1.0
