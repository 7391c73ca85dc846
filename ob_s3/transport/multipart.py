import math
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from ob_s3.config.settings import MIB
from ob_s3.logging.logger import Log
from ob_s3.transport.deadline import run_with_deadline
from ob_s3.transport.exceptions import (
    PartUploadError,
    PresignTimeoutError,
    TransportError,
    UploadAbortedError,
    UploadTimeoutError,
)
from ob_s3.transport.http_put import HttpPutClient
from ob_s3.transport.models import (
    PartResult,
    PartStatus,
    UploadPart,
    backoff_delay,
    plan_parts,
)
from ob_s3.transport.part_sources import PartSource
from ob_s3.transport.s3_client import S3ControlPlane
from ob_s3.transport.simple import PublicUrlPolicy

ProgressCallback = Callable[[int], None]


class MultipartSession:
    """One multipart transfer: create, upload parts in parallel, complete or abort.

    Part lifecycle: pending -> uploading -> completed | failed. A failed part
    goes back to uploading after ``base * 2**retry_count`` seconds (capped)
    until ``max_retries`` attempts are spent; then the whole session aborts.
    """

    def __init__(
        self,
        transport: "ChunkedTransport",
        key: str,
        content_type: str,
        source: PartSource,
        presign_timeout: float,
        upload_timeout: float,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._transport = transport
        self._key = key
        self._content_type = content_type
        self._source = source
        self._presign_timeout = presign_timeout
        self._upload_timeout = upload_timeout
        self._on_progress = on_progress

        self._file_size = source.size()
        self.parts = plan_parts(self._file_size, transport.chunk_size)
        self._upload_id: str | None = None
        self._completed_bytes = 0
        self._stop = threading.Event()
        self._remote_aborted = False
        self._lock = threading.Lock()

    @property
    def upload_id(self) -> str | None:
        return self._upload_id

    @property
    def progress(self) -> int:
        with self._lock:
            return math.floor(self._completed_bytes / self._file_size * 100)

    def run(self) -> str:
        """Transfer every part and return the public URL.

        Raises:
            PartUploadError: if a part exhausts its retries.
            UploadAbortedError: if ``abort`` was called mid-transfer.
            TransportError: if create/complete fail.
        """
        control_plane = self._transport.control_plane
        self._upload_id = run_with_deadline(
            lambda: control_plane.create_multipart_upload(self._key, self._content_type),
            self._presign_timeout,
            timeout_error=lambda: PresignTimeoutError(
                f"Timed out creating multipart upload for {self._key}"
            ),
            on_late_result=self._abort_late_session,
        )
        Log.info(
            "Multipart upload started",
            key=self._key,
            parts=len(self.parts),
            size=self._file_size,
        )
        try:
            self._upload_parts()
            self._complete()
        except Exception:
            self.abort()
            raise
        Log.info("Multipart upload completed", key=self._key, parts=len(self.parts))
        return self._transport.public_url(self._key)

    def abort(self) -> None:
        """Stop admitting parts and best-effort abort the remote session."""
        self._stop.set()
        with self._lock:
            if self._remote_aborted or self._upload_id is None:
                return
            self._remote_aborted = True
        try:
            self._transport.control_plane.abort_multipart_upload(self._key, self._upload_id)
            Log.info("Multipart upload aborted", key=self._key)
        except TransportError as exc:
            Log.warning(f"Failed to abort multipart upload: {exc}", key=self._key)

    def _abort_late_session(self, upload_id: str) -> None:
        """Abort a remote session whose create call outlived its deadline."""
        try:
            self._transport.control_plane.abort_multipart_upload(self._key, upload_id)
            Log.info("Late multipart upload aborted", key=self._key)
        except TransportError as exc:
            Log.warning(f"Failed to abort late multipart upload: {exc}", key=self._key)

    def _upload_parts(self) -> None:
        slots = threading.BoundedSemaphore(self._transport.max_concurrent_parts)
        futures: list[Future[PartResult]] = []
        with ThreadPoolExecutor(
            max_workers=self._transport.max_concurrent_parts,
            thread_name_prefix="ob-s3-part",
        ) as executor:
            for part in self.parts:
                slots.acquire()
                if self._stop.is_set():
                    slots.release()
                    break
                future = executor.submit(self._upload_part_with_retry, part)
                future.add_done_callback(lambda _done: slots.release())
                futures.append(future)
            results = [future.result() for future in futures]

        part_errors = [
            result.error for result in results if isinstance(result.error, PartUploadError)
        ]
        if part_errors:
            raise part_errors[0]
        if len(results) < len(self.parts) or not all(result.ok for result in results):
            raise UploadAbortedError(f"Multipart upload aborted for {self._key}")

    def _upload_part_with_retry(self, part: UploadPart) -> PartResult:
        while True:
            if self._stop.is_set():
                return PartResult(
                    part.part_number,
                    error=UploadAbortedError(f"Part {part.part_number} cancelled"),
                )
            part.status = PartStatus.UPLOADING
            result = self._attempt_part(part)
            if result.ok:
                part.etag = result.etag
                part.status = PartStatus.COMPLETED
                self._record_completion(part)
                return result

            part.status = PartStatus.FAILED
            part.retry_count += 1
            if part.retry_count >= self._transport.max_retries:
                self._stop.set()
                Log.error(
                    f"Part {part.part_number} failed after {part.retry_count} attempts: "
                    f"{result.error}",
                    key=self._key,
                )
                return PartResult(
                    part.part_number,
                    error=PartUploadError(
                        f"Failed to upload part {part.part_number} after "
                        f"{part.retry_count} attempts: {result.error}",
                        part_number=part.part_number,
                        attempts=part.retry_count,
                    ),
                )
            delay = backoff_delay(
                part.retry_count,
                self._transport.backoff_base_seconds,
                self._transport.backoff_cap_seconds,
            )
            Log.warning(
                f"Part {part.part_number} failed, retrying in {delay}s: {result.error}",
                key=self._key,
            )
            self._transport.sleep(delay)

    def _attempt_part(self, part: UploadPart) -> PartResult:
        control_plane = self._transport.control_plane
        upload_id = self._upload_id or ""
        try:
            url = run_with_deadline(
                lambda: control_plane.presign_upload_part(
                    self._key,
                    upload_id,
                    part.part_number,
                    self._transport.presign_expires_seconds,
                ),
                self._presign_timeout,
                timeout_error=lambda: PresignTimeoutError(
                    f"Presign timeout for part {part.part_number}"
                ),
            )
            data = self._source.read(part)
            if len(data) != part.size:
                return PartResult(
                    part.part_number,
                    error=PartUploadError(
                        f"Failed to read complete part data: expected {part.size}, "
                        f"got {len(data)}",
                        part_number=part.part_number,
                    ),
                )
            headers = self._transport.http_client.put(
                url, data, self._content_type, self._upload_timeout
            )
        except (TransportError, OSError) as exc:
            return PartResult(part.part_number, error=exc)

        etag = headers.get("etag")
        if not etag:
            return PartResult(
                part.part_number,
                error=PartUploadError(
                    f"Part {part.part_number} response carried no ETag",
                    part_number=part.part_number,
                ),
            )
        return PartResult(part.part_number, etag=etag)

    def _record_completion(self, part: UploadPart) -> None:
        with self._lock:
            self._completed_bytes += part.size
            progress = math.floor(self._completed_bytes / self._file_size * 100)
        if self._on_progress is not None:
            self._on_progress(progress)

    def _complete(self) -> None:
        upload_id = self._upload_id or ""
        completed = [part for part in self.parts if part.status is PartStatus.COMPLETED]
        run_with_deadline(
            lambda: self._transport.control_plane.complete_multipart_upload(
                self._key, upload_id, completed
            ),
            self._upload_timeout,
            timeout_error=lambda: UploadTimeoutError(
                f"Timed out completing multipart upload for {self._key}"
            ),
        )


class ChunkedTransport:
    """Multipart transport for payloads too large for a single PUT."""

    def __init__(
        self,
        control_plane: S3ControlPlane,
        http_client: HttpPutClient,
        public_url: PublicUrlPolicy,
        *,
        chunk_size: int = 5 * MIB,
        max_concurrent_parts: int = 3,
        max_retries: int = 3,
        backoff_base_seconds: float = 1.0,
        backoff_cap_seconds: float = 30.0,
        presign_expires_seconds: int = 3600,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_concurrent_parts < 1:
            raise ValueError("max_concurrent_parts must be at least 1")
        self.control_plane = control_plane
        self.http_client = http_client
        self.public_url = public_url
        self.chunk_size = chunk_size
        self.max_concurrent_parts = max_concurrent_parts
        self.max_retries = max(1, max_retries)
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_cap_seconds = backoff_cap_seconds
        self.presign_expires_seconds = presign_expires_seconds
        self.sleep = sleep

    def open_session(
        self,
        key: str,
        content_type: str,
        source: PartSource,
        presign_timeout: float,
        upload_timeout: float,
        on_progress: ProgressCallback | None = None,
    ) -> MultipartSession:
        """Plan a session without starting it; callers keep a handle for ``abort``."""
        return MultipartSession(
            self,
            key,
            content_type,
            source,
            presign_timeout,
            upload_timeout,
            on_progress,
        )

    def upload(
        self,
        key: str,
        content_type: str,
        source: PartSource,
        presign_timeout: float,
        upload_timeout: float,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        session = self.open_session(
            key, content_type, source, presign_timeout, upload_timeout, on_progress
        )
        return session.run()
