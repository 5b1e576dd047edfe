from __future__ import annotations

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest
from layer_balancer.core.errors import (
    DownloadStatusError,
    DownloadTimeoutError,
    TransportError,
)
from layer_balancer.layers.transfer import download_package, make_http_client

URL = "https://prod-04-2014-layers.s3.amazonaws.com/snapshots/layer.zip?X-Amz-Signature=secret"
PAYLOAD = b"PK\x03\x04zip!"


class _LayerHandler(BaseHTTPRequestHandler):
    """Serves PAYLOAD at /fast.zip, and one byte every 0.5s at /slow.zip."""

    requests: list[str] = []

    def do_GET(self) -> None:
        type(self).requests.append(self.path)
        self.send_response(200)
        self.send_header("Content-Type", "application/zip")
        self.send_header("Content-Length", str(len(PAYLOAD)))
        self.end_headers()
        try:
            if self.path.startswith("/slow.zip"):
                for b in PAYLOAD:
                    self.wfile.write(bytes([b]))
                    self.wfile.flush()
                    time.sleep(0.5)
            else:
                self.wfile.write(PAYLOAD)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args) -> None:
        pass


@pytest.fixture
def layer_server(monkeypatch):
    # loopback must not be routed through an environment proxy
    monkeypatch.setenv("NO_PROXY", "127.0.0.1")
    monkeypatch.setenv("no_proxy", "127.0.0.1")
    _LayerHandler.requests = []
    server = ThreadingHTTPServer(("127.0.0.1", 0), _LayerHandler)
    server.block_on_close = False
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def _client(handler) -> httpx.Client:
    return make_http_client(transport=httpx.MockTransport(handler))


def test_download_package_returns_served_bytes() -> None:
    payload = bytes(range(256)) * 4
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=payload)

    with _client(handler) as client:
        out = download_package(URL, client=client)

    assert out == payload
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert str(seen[0].url) == URL


def test_download_package_bounds_request_with_timeout() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"OK")

    with _client(handler) as client:
        download_package(URL, timeout=1.5, client=client)

    assert seen[0].extensions["timeout"] == {
        "connect": 1.5,
        "read": 1.5,
        "write": 1.5,
        "pool": 1.5,
    }


def test_download_package_reads_body_from_real_server(layer_server: str) -> None:
    assert download_package(f"{layer_server}/fast.zip?sig=x", timeout=5.0) == PAYLOAD
    assert _LayerHandler.requests == ["/fast.zip?sig=x"]


def test_download_package_deadline_covers_slow_body(layer_server: str) -> None:
    # every read completes well inside the per-step timeout, the whole body does not
    t0 = time.monotonic()
    with pytest.raises(DownloadTimeoutError) as ei:
        download_package(f"{layer_server}/slow.zip", timeout=1.0)
    elapsed = time.monotonic() - t0

    assert elapsed < 2.5
    assert isinstance(ei.value, TransportError)


@pytest.mark.parametrize("timeout", [0, -1.0])
def test_download_package_expired_timeout_sends_nothing(
    layer_server: str, timeout: float
) -> None:
    with pytest.raises(DownloadTimeoutError) as ei:
        download_package(f"{layer_server}/fast.zip?X-Amz-Signature=secret", timeout=timeout)

    assert _LayerHandler.requests == []
    # presigned query string is not echoed into errors
    assert "secret" not in str(ei.value)


def test_download_package_transport_timeout_is_timeout_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(DownloadTimeoutError) as ei:
            download_package(URL, timeout=1.0, client=client)

    assert isinstance(ei.value.__cause__, httpx.TimeoutException)
    assert "secret" not in str(ei.value)


def test_download_package_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    with _client(handler) as client:
        with pytest.raises(TransportError) as ei:
            download_package("http://error", client=client)

    assert not isinstance(ei.value, DownloadTimeoutError)


def test_download_package_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, content=b"AccessDenied")

    with _client(handler) as client:
        with pytest.raises(DownloadStatusError) as ei:
            download_package(URL, client=client)

    assert ei.value.status_code == 403


@pytest.mark.parametrize("location", [None, ""])
def test_download_package_requires_location(location) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with _client(handler) as client:
        with pytest.raises(TransportError):
            download_package(location, client=client)
