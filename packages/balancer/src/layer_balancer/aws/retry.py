from __future__ import annotations

import structlog
from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError
from tenacity import Retrying, retry_if_exception, stop_after_attempt, stop_after_delay
from tenacity.wait import wait_base

log = structlog.get_logger(__name__)

_THROTTLING_CODES: frozenset[str] = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "ServiceException",
    }
)


class DeterministicExponentialBackoff(wait_base):
    def __init__(self, *, base: float = 0.25, cap: float = 1.0) -> None:
        self._base = float(base)
        self._cap = float(cap)

    def __call__(self, retry_state) -> float:
        n = retry_state.attempt_number
        return min(self._cap, self._base * (2 ** (n - 1)))


def is_retryable_aws_error(exc: BaseException) -> bool:
    if isinstance(exc, (BotoConnectionError, HTTPClientError)):
        return True
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        meta = exc.response.get("ResponseMetadata", {})
        if err.get("Code") in _THROTTLING_CODES:
            return True
        return int(meta.get("HTTPStatusCode") or 0) >= 500
    return False


def retrying(
    *,
    operation: str,
    max_attempts: int = 5,
    base: float = 0.25,
    cap: float = 1.0,
    deadline: float | None = None,
) -> Retrying:
    """
    `deadline` bounds the whole call in seconds, attempts and backoff
    included; no new attempt starts once it has passed.
    """

    def _before_sleep(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        sleep = retry_state.next_action.sleep if retry_state.next_action else None
        log.warning(
            "aws.retry",
            operation=operation,
            attempt=retry_state.attempt_number,
            sleep_s=sleep,
            error=repr(exc) if exc else None,
        )

    stop = stop_after_attempt(max_attempts)
    if deadline is not None:
        stop = stop | stop_after_delay(deadline)

    return Retrying(
        stop=stop,
        wait=DeterministicExponentialBackoff(base=base, cap=cap),
        retry=retry_if_exception(is_retryable_aws_error),
        reraise=True,
        before_sleep=_before_sleep,
    )
