import time
from collections.abc import Callable
from pathlib import Path

from ob_s3.logging.logger import Log
from ob_s3.transport.multipart import ChunkedTransport, ProgressCallback
from ob_s3.transport.part_sources import BytesPartSource, FilePartSource, PartSource
from ob_s3.transport.simple import SimpleTransport


class UploadDispatcher:
    """Routes a payload to a single PUT or a multipart session by size."""

    def __init__(
        self,
        simple: SimpleTransport,
        chunked: ChunkedTransport,
        multipart_threshold_bytes: int,
        presign_timeout: float,
        upload_timeout: float,
    ) -> None:
        self._simple = simple
        self._chunked = chunked
        self._threshold = multipart_threshold_bytes
        self._presign_timeout = max(1.0, presign_timeout)
        self._upload_timeout = max(1.0, upload_timeout)

    def uses_multipart(self, size: int) -> bool:
        return size > self._threshold

    def upload(
        self,
        key: str,
        content_type: str,
        data: bytes,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload in-memory bytes and return the public URL."""
        if self.uses_multipart(len(data)):
            return self._timed(
                key,
                lambda: self._upload_chunked(key, content_type, BytesPartSource(data), on_progress),
            )
        return self._timed(
            key,
            lambda: self._simple.put_object(
                key, content_type, data, self._presign_timeout, self._upload_timeout
            ),
        )

    def upload_file(
        self,
        key: str,
        content_type: str,
        path: Path,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload a file from disk; large files are read part by part."""
        size = path.stat().st_size
        if self.uses_multipart(size):
            return self._timed(
                key,
                lambda: self._upload_chunked(key, content_type, FilePartSource(path), on_progress),
            )
        return self.upload(key, content_type, path.read_bytes(), on_progress)

    def _upload_chunked(
        self,
        key: str,
        content_type: str,
        source: PartSource,
        on_progress: ProgressCallback | None,
    ) -> str:
        return self._chunked.upload(
            key,
            content_type,
            source,
            self._presign_timeout,
            self._upload_timeout,
            on_progress,
        )

    def _timed(self, key: str, operation: Callable[[], str]) -> str:
        started = time.perf_counter()
        try:
            url = operation()
        except Exception as exc:
            elapsed = round(time.perf_counter() - started, 3)
            Log.error("Upload failed", key=key, duration_sec=elapsed, error=exc)
            raise
        elapsed = round(time.perf_counter() - started, 3)
        Log.info("Upload success", key=key, duration_sec=elapsed)
        return url
