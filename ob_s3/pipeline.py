import mimetypes
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from ob_s3.config.profile import S3Profile
from ob_s3.config.settings import Settings
from ob_s3.database.repositories.state_blob_repository import PostgresBlobStore
from ob_s3.document.base import BaseDocument, CursorPosition
from ob_s3.identifiers.mime import DEFAULT_MIME_TYPE, extension_from_mime
from ob_s3.identifiers.upload_id import generate_upload_id
from ob_s3.logging.logger import Log
from ob_s3.payload.cache import PayloadCache
from ob_s3.payload.file_loader import PayloadLoader, blob_ref
from ob_s3.payload.models import Payload
from ob_s3.payload.resolver import PayloadResolver
from ob_s3.payload.size_guard import ConfirmOversize, within_limit_or_confirmed
from ob_s3.placeholder.exceptions import PlaceholderNotFoundError
from ob_s3.placeholder.protocol import EMPTY_REF, PlaceholderStatus, encode_uploading, find
from ob_s3.placeholder.transitions import mark_failed, mark_uploading
from ob_s3.queue.exceptions import QueueIOError
from ob_s3.queue.models import QueueItem
from ob_s3.queue.store import BlobStore, JsonFileBlobStore
from ob_s3.queue.upload_queue import UploadQueue
from ob_s3.retry.handler import RetryHandler
from ob_s3.transport.dispatcher import UploadDispatcher
from ob_s3.transport.http_put import HttpPutClient
from ob_s3.transport.multipart import ChunkedTransport
from ob_s3.transport.s3_client import S3ControlPlane, build_s3_client
from ob_s3.transport.simple import SimpleTransport
from ob_s3.worker.models import UploadOutcome
from ob_s3.worker.processor import DocumentProvider, QueueProcessor
from ob_s3.worker.scheduler import Scheduler
from ob_s3.worker.upload_runner import UploadRunner


class UploadPipeline:
    """Session-wide owner of the cache, queue, scheduler and retry handler.

    Capture inserts an ``uploading`` placeholder, then either uploads at once
    or hands the work to the queue. Retry re-arms a ``failed`` placeholder
    with the same upload id, so the storage key is reused.
    """

    def __init__(
        self,
        *,
        cache: PayloadCache,
        queue: UploadQueue,
        loader: PayloadLoader,
        resolver: PayloadResolver,
        runner: UploadRunner,
        processor: QueueProcessor,
        scheduler: Scheduler,
        enable_temp_local: bool = False,
        max_upload_mb: int = 5,
        retry_via_queue: bool = False,
        confirm_oversize: ConfirmOversize | None = None,
    ) -> None:
        self.cache = cache
        self.queue = queue
        self.processor = processor
        self.scheduler = scheduler
        self.retry_handler = RetryHandler(self._rearm)
        self._loader = loader
        self._resolver = resolver
        self._runner = runner
        self._enable_temp_local = enable_temp_local
        self._max_upload_mb = max_upload_mb
        self._retry_via_queue = retry_via_queue
        self._confirm_oversize = confirm_oversize
        self._document_lock = runner.document_lock

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def capture(
        self,
        document: BaseDocument,
        payload: Payload,
        deferred: bool = False,
        preview_ref: str | None = None,
    ) -> UploadOutcome | None:
        """Insert a placeholder for ``payload`` and upload it now or via the queue.

        Returns None when the size guard declined the payload; the document is
        not touched in that case.
        """
        if not within_limit_or_confirmed(payload.size, self._max_upload_mb, self._confirm_oversize):
            Log.info("Capture declined by size guard", size=payload.size)
            return None

        upload_id = generate_upload_id()
        ref = preview_ref or self._preview_ref(upload_id, payload)
        with self._document_lock:
            document.insert_at_selection(encode_uploading(upload_id, ref))
        self.cache.put(upload_id, payload)
        Log.info("Captured upload", upload_id=upload_id, size=payload.size, deferred=deferred)

        if deferred:
            self._enqueue(document, upload_id, payload, ref)
            return UploadOutcome(upload_id=upload_id)
        return self._run_direct(document, upload_id, payload, ref)

    def retry(
        self, document: BaseDocument, upload_id: str, deferred: bool = False
    ) -> UploadOutcome:
        """Re-arm a failed placeholder.

        Raises:
            PlaceholderNotFoundError: if no failed placeholder carries the id.
            PayloadMissingError: if the bytes are neither cached nor on disk;
                the placeholder stays failed.
        """
        with self._document_lock:
            match = find(document, upload_id)
            if match is None or match.placeholder.status is not PlaceholderStatus.FAILED:
                raise PlaceholderNotFoundError(f"No failed placeholder for upload {upload_id}")

            stale_ref = match.placeholder.ref
            queued = next((item for item in self.queue.items() if item.id == upload_id), None)
            refs = [stale_ref] + ([queued.preview_ref] if queued else [])
            mime_type = queued.mime_type if queued else self._guess_mime(stale_ref)
            filename = queued.filename if queued else None
            payload = self._resolver.resolve(upload_id, refs, mime_type, filename)

            preview_ref = stale_ref
            if not stale_ref or stale_ref == EMPTY_REF:
                preview_ref = blob_ref(upload_id)
            mark_uploading(document, upload_id, preview_ref)
        Log.info("Re-armed upload", upload_id=upload_id, deferred=deferred)

        if deferred:
            if queued is None:
                self._enqueue(document, upload_id, payload, preview_ref)
            return UploadOutcome(upload_id=upload_id)
        return self._run_direct(document, upload_id, payload, preview_ref)

    def handle_interaction(
        self, document: BaseDocument, position: CursorPosition | None = None
    ) -> str | None:
        return self.retry_handler.handle_interaction(document, position)

    def _rearm(self, document: BaseDocument, upload_id: str) -> UploadOutcome:
        return self.retry(document, upload_id, deferred=self._retry_via_queue)

    def _run_direct(
        self, document: BaseDocument, upload_id: str, payload: Payload, preview_ref: str
    ) -> UploadOutcome:
        outcome = self._runner.run(document, upload_id, payload, preview_ref)
        if outcome.succeeded and self.queue.contains(upload_id):
            self.queue.remove(upload_id)
        return outcome

    def _enqueue(
        self, document: BaseDocument, upload_id: str, payload: Payload, preview_ref: str
    ) -> None:
        item = QueueItem(
            id=upload_id,
            filename=payload.filename or f"{upload_id}.{extension_from_mime(payload.mime_type)}",
            mime_type=payload.mime_type,
            preview_ref=preview_ref,
            size=payload.size,
        )
        try:
            self.queue.enqueue(item)
        except QueueIOError:
            with self._document_lock:
                mark_failed(document, upload_id, preview_ref)
            raise

    def _preview_ref(self, upload_id: str, payload: Payload) -> str:
        if self._enable_temp_local:
            return self._loader.save_temp(upload_id, payload)
        return blob_ref(upload_id)

    @staticmethod
    def _guess_mime(ref: str) -> str:
        guessed, _ = mimetypes.guess_type(ref)
        return guessed or DEFAULT_MIME_TYPE


def _build_blob_store(settings: Settings, base_dir: Path) -> BlobStore:
    if settings.queue_backend == "postgres":
        return PostgresBlobStore()
    return JsonFileBlobStore(base_dir / settings.queue_file_path)


def build_pipeline(
    settings: Settings,
    document_provider: DocumentProvider,
    *,
    base_dir: Path | None = None,
    profile_provider: Callable[[], S3Profile] | None = None,
    s3_client_factory: Callable[[S3Profile], Any] = build_s3_client,
    http_transport: httpx.BaseTransport | None = None,
    blob_store: BlobStore | None = None,
    confirm_oversize: ConfirmOversize | None = None,
    sleep: Callable[[float], None] | None = None,
) -> UploadPipeline:
    """Wire one pipeline per session from settings."""
    root = base_dir if base_dir is not None else Path.cwd()
    profile_source = profile_provider or (lambda: S3Profile.from_settings(settings))

    control_plane = S3ControlPlane(profile_source, client_factory=s3_client_factory)
    http_client = HttpPutClient(transport=http_transport)
    simple = SimpleTransport(
        control_plane,
        http_client,
        control_plane.public_url,
        presign_expires_seconds=settings.presign_expires_seconds,
        cache_control=settings.s3_cache_control,
    )
    chunked_options: dict[str, Any] = {}
    if sleep is not None:
        chunked_options["sleep"] = sleep
    chunked = ChunkedTransport(
        control_plane,
        http_client,
        control_plane.public_url,
        chunk_size=settings.multipart_chunk_size_bytes,
        max_concurrent_parts=settings.multipart_max_concurrent_parts,
        max_retries=settings.multipart_max_retries,
        backoff_base_seconds=settings.multipart_backoff_base_seconds,
        backoff_cap_seconds=settings.multipart_backoff_cap_seconds,
        **chunked_options,
    )
    dispatcher = UploadDispatcher(
        simple,
        chunked,
        multipart_threshold_bytes=settings.multipart_threshold_bytes,
        presign_timeout=settings.presign_timeout_seconds,
        upload_timeout=settings.upload_timeout_seconds,
    )

    cache = PayloadCache(capacity=settings.payload_cache_capacity)
    loader = PayloadLoader(root, temp_root=settings.temp_root)
    resolver = PayloadResolver(cache, loader)
    queue = UploadQueue(blob_store or _build_blob_store(settings, root))
    runner = UploadRunner(
        dispatcher,
        cache,
        key_prefix=settings.s3_key_prefix,
        key_date_format=settings.key_prefix_format,
    )
    processor = QueueProcessor(queue, resolver, runner, document_provider)
    scheduler = Scheduler(processor.process_next, interval_ms=settings.scheduler_interval_ms)

    return UploadPipeline(
        cache=cache,
        queue=queue,
        loader=loader,
        resolver=resolver,
        runner=runner,
        processor=processor,
        scheduler=scheduler,
        enable_temp_local=settings.enable_temp_local,
        max_upload_mb=settings.max_upload_mb,
        retry_via_queue=settings.retry_via_queue,
        confirm_oversize=confirm_oversize,
    )
