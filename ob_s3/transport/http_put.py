import httpx

from ob_s3.transport.deadline import run_with_deadline
from ob_s3.transport.exceptions import (
    TransportNetworkError,
    UploadFailedError,
    UploadTimeoutError,
)

MAX_ERROR_BODY_CHARS = 500


class HttpPutClient:
    """PUTs bytes to presigned URLs with two independent timeouts.

    httpx enforces the socket-level timeout; a wall-clock deadline closes the
    client, and with it the connection, if the whole request runs long.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def put(
        self,
        url: str,
        body: bytes,
        content_type: str,
        timeout_seconds: float,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Headers:
        """Upload ``body`` and return the response headers.

        Raises:
            UploadTimeoutError: if either timeout fires.
            UploadFailedError: on a non-2xx response.
            TransportNetworkError: on connection failures.
        """
        headers = {
            "Content-Type": content_type or "application/octet-stream",
            "Content-Length": str(len(body)),
            **(extra_headers or {}),
        }
        client = httpx.Client(timeout=httpx.Timeout(timeout_seconds), transport=self._transport)

        def send() -> httpx.Response:
            try:
                return client.put(url, content=body, headers=headers)
            except httpx.TimeoutException as exc:
                raise UploadTimeoutError(f"Upload timeout: {exc}") from exc
            except httpx.TransportError as exc:
                raise TransportNetworkError(f"Upload network error: {exc}") from exc

        try:
            response = run_with_deadline(
                send,
                timeout_seconds,
                timeout_error=lambda: UploadTimeoutError(
                    f"Upload timeout after {timeout_seconds}s"
                ),
                on_timeout=client.close,
            )
        finally:
            client.close()

        if not response.is_success:
            raise UploadFailedError(response.status_code, response.text[:MAX_ERROR_BODY_CHARS])
        return response.headers
