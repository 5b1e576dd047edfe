from __future__ import annotations

import traceback
from dataclasses import dataclass


class BalancerError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class RunError:
    """
    A normalized error record for a failed run.
    """

    exc_type: str
    message: str
    traceback: str


def run_error_from_exc(exc: BaseException) -> RunError:
    return RunError(
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback="".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
    )


class ConfigError(BalancerError):
    """Invalid run configuration or credential setup"""


class NoVersionsFound(BalancerError):
    """
    The layer has no published versions in the store.

    Expected on a fresh destination, fatal on the source.
    """

    def __init__(self, layer_name: str) -> None:
        super().__init__(f"no layer versions found for {layer_name}")
        self.layer_name = layer_name


class TransportError(BalancerError):
    """
    Network, timeout or API failure while reading from a store or downloading content
    """


class DownloadTimeoutError(TransportError):
    """Content download exceeded its timeout"""


class DownloadStatusError(TransportError):
    def __init__(self, *, url: str, status_code: int) -> None:
        super().__init__(f"HTTP {status_code} for GET {url}")
        self.url = url
        self.status_code = status_code


class PreconditionViolation(BalancerError):
    """
    The destination layer already has versions; nothing is mutated.
    """

    def __init__(self, *, layer_name: str, count: int) -> None:
        super().__init__(
            f"the new layer shouldn't exist, found {count} versions for {layer_name}"
        )
        self.layer_name = layer_name
        self.count = count


class PublishError(BalancerError):
    """Publishing a new layer version failed"""

    def __init__(self, message: str, *, layer_name: str) -> None:
        super().__init__(message)
        self.layer_name = layer_name


class PermissionGrantError(BalancerError):
    """
    Granting public access failed. The published version is left in place.
    """

    def __init__(self, message: str, *, layer_name: str, version: int) -> None:
        super().__init__(message)
        self.layer_name = layer_name
        self.version = version
