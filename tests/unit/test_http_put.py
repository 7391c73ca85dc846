import threading

import httpx
import pytest

from ob_s3.transport.exceptions import (
    TransportNetworkError,
    UploadFailedError,
    UploadTimeoutError,
)
from ob_s3.transport.http_put import HttpPutClient

URL = "https://s3.example.com/notes/key.png?X-Amz-Signature=abc"


class TestHttpPutClientSuccess:
    def test_returns_response_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, headers={"ETag": '"etag-1"'})

        client = HttpPutClient(transport=httpx.MockTransport(handler))
        headers = client.put(URL, b"payload", "image/png", 5.0)

        assert headers["etag"] == '"etag-1"'
        request = seen[0]
        assert request.method == "PUT"
        assert request.headers["Content-Type"] == "image/png"
        assert request.headers["Content-Length"] == "7"
        assert request.content == b"payload"

    def test_sends_extra_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        client = HttpPutClient(transport=httpx.MockTransport(handler))
        client.put(URL, b"x", "", 5.0, {"Cache-Control": "max-age=60"})

        assert seen[0].headers["Cache-Control"] == "max-age=60"
        assert seen[0].headers["Content-Type"] == "application/octet-stream"


class TestHttpPutClientFailures:
    def test_non_2xx_raises_upload_failed(self) -> None:
        client = HttpPutClient(
            transport=httpx.MockTransport(lambda _r: httpx.Response(403, text="AccessDenied"))
        )
        with pytest.raises(UploadFailedError, match="Upload failed: 403 - AccessDenied") as exc:
            client.put(URL, b"x", "image/png", 5.0)
        assert exc.value.status == 403
        assert exc.value.kind == "upload_failed"

    def test_socket_timeout_raises_upload_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = HttpPutClient(transport=httpx.MockTransport(handler))
        with pytest.raises(UploadTimeoutError):
            client.put(URL, b"x", "image/png", 5.0)

    def test_connection_error_raises_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = HttpPutClient(transport=httpx.MockTransport(handler))
        with pytest.raises(TransportNetworkError):
            client.put(URL, b"x", "image/png", 5.0)

    def test_wall_clock_deadline(self) -> None:
        release = threading.Event()

        def handler(_request: httpx.Request) -> httpx.Response:
            release.wait(5)
            return httpx.Response(200)

        client = HttpPutClient(transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(UploadTimeoutError, match="after 0.1s"):
                client.put(URL, b"x", "image/png", 0.1)
        finally:
            release.set()
