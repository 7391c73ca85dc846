from collections.abc import Callable

from ob_s3.transport.deadline import run_with_deadline
from ob_s3.transport.exceptions import PresignTimeoutError
from ob_s3.transport.http_put import HttpPutClient
from ob_s3.transport.s3_client import S3ControlPlane

PublicUrlPolicy = Callable[[str], str]


class SimpleTransport:
    """Single presigned PUT. No retries here; callers own retry policy."""

    def __init__(
        self,
        control_plane: S3ControlPlane,
        http_client: HttpPutClient,
        public_url: PublicUrlPolicy,
        presign_expires_seconds: int = 300,
        cache_control: str = "",
    ) -> None:
        self._control_plane = control_plane
        self._http_client = http_client
        self._public_url = public_url
        self._presign_expires_seconds = presign_expires_seconds
        self._cache_control = cache_control

    def presign(self, key: str, content_type: str, presign_timeout: float) -> str:
        return run_with_deadline(
            lambda: self._control_plane.presign_put(
                key, content_type, self._presign_expires_seconds
            ),
            presign_timeout,
            timeout_error=lambda: PresignTimeoutError(
                f"Presign timeout after {presign_timeout}s for {key}"
            ),
        )

    def put_object(
        self,
        key: str,
        content_type: str,
        payload: bytes,
        presign_timeout: float,
        upload_timeout: float,
    ) -> str:
        """Presign, PUT the bytes and return the object's public URL."""
        url = self.presign(key, content_type, presign_timeout)
        extra_headers = {"Cache-Control": self._cache_control} if self._cache_control else None
        self._http_client.put(url, payload, content_type, upload_timeout, extra_headers)
        return self._public_url(key)
