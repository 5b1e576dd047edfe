from __future__ import annotations

import time

import httpx
import structlog

from layer_balancer.core.errors import (
    DownloadStatusError,
    DownloadTimeoutError,
    TransportError,
)

log = structlog.get_logger(__name__)

DEFAULT_DOWNLOAD_TIMEOUT_S = 5.0


def make_http_client(
    *,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_S,
    retries: int = 0,
    follow_redirects: bool = True,
    user_agent: str = "layer-balancer/0.1",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """
    `retries` only covers connection establishment and is applied by the
    httpx transport, never by callers.
    """
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        follow_redirects=follow_redirects,
        headers={"User-Agent": user_agent},
        transport=transport or httpx.HTTPTransport(retries=retries),
    )


def download_package(
    location: str | None,
    *,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_S,
    client: httpx.Client | None = None,
) -> bytes:
    """
    GET `location` and return the whole body.

    `timeout` bounds the whole request, from connect through the last body
    chunk. httpx timeouts only cover each connect/read/write step, so the
    body is streamed and checked against a monotonic deadline per chunk.
    A timeout of zero or less is already expired and sends nothing.
    """
    if not location:
        raise TransportError("layer version has no content location")

    deadline = time.monotonic() + timeout
    if timeout <= 0:
        raise DownloadTimeoutError(
            f"timed out after {timeout}s downloading {_redact(location)}"
        )

    log.info("download.start", location=_redact(location))

    owns_client = client is None
    if client is None:
        client = make_http_client(timeout=timeout)

    body = bytearray()
    try:
        with client.stream("GET", location, timeout=httpx.Timeout(timeout)) as resp:
            if not resp.is_success:
                raise DownloadStatusError(
                    url=_redact(location), status_code=resp.status_code
                )
            for chunk in resp.iter_bytes():
                if time.monotonic() > deadline:
                    raise DownloadTimeoutError(
                        f"timed out after {timeout}s downloading {_redact(location)}"
                    )
                body.extend(chunk)
    except httpx.TimeoutException as e:
        raise DownloadTimeoutError(
            f"timed out after {timeout}s downloading {_redact(location)}"
        ) from e
    except httpx.HTTPError as e:
        raise TransportError(f"failed downloading {_redact(location)}: {e}") from e
    finally:
        if owns_client:
            client.close()

    log.debug("download.finish", bytes=len(body))
    return bytes(body)


def _redact(location: str) -> str:
    # presigned S3 URLs carry credentials in the query string
    return location.split("?", 1)[0]
