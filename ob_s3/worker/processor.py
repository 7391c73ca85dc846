from collections.abc import Callable

from ob_s3.document.base import BaseDocument
from ob_s3.logging.logger import Log
from ob_s3.payload.exceptions import PayloadMissingError
from ob_s3.payload.resolver import PayloadResolver
from ob_s3.placeholder.exceptions import PlaceholderNotFoundError
from ob_s3.placeholder.protocol import find
from ob_s3.queue.models import QueueItem
from ob_s3.queue.upload_queue import UploadQueue
from ob_s3.transport.exceptions import TransportError
from ob_s3.worker.models import ProcessOutcome
from ob_s3.worker.upload_runner import UploadRunner

DocumentProvider = Callable[[], BaseDocument | None]


class QueueProcessor:
    """Processes the head of the upload queue, one item per call.

    The item is dequeued only after storage accepted the bytes and the
    placeholder was settled; any transport failure leaves it at the head.
    """

    def __init__(
        self,
        queue: UploadQueue,
        resolver: PayloadResolver,
        runner: UploadRunner,
        document_provider: DocumentProvider,
    ) -> None:
        self._queue = queue
        self._resolver = resolver
        self._runner = runner
        self._document_provider = document_provider

    def process_next(self) -> ProcessOutcome:
        item = self._queue.peek_first()
        if item is None:
            return ProcessOutcome(processed=False)

        document = self._document_provider()
        if document is None:
            Log.debug("No active document, queue head waits", upload_id=item.id)
            return ProcessOutcome(processed=False, upload_id=item.id)

        try:
            payload = self._resolver.resolve(
                item.id,
                self._candidate_refs(item, document),
                item.mime_type,
                item.filename,
            )
        except PayloadMissingError as exc:
            Log.warning(f"Cannot process queued upload: {exc}", upload_id=item.id)
            return ProcessOutcome(processed=False, upload_id=item.id, error=exc)

        try:
            url = self._runner.upload(item.id, payload)
        except TransportError as exc:
            Log.error(
                f"Queued upload failed, will retry on next tick: {exc}",
                upload_id=item.id,
                kind=exc.kind,
            )
            return ProcessOutcome(processed=False, upload_id=item.id, error=exc)

        error: Exception | None = None
        try:
            self._runner.settle_success(document, item.id, url, payload)
        except PlaceholderNotFoundError as exc:
            Log.warning(str(exc), upload_id=item.id, url=url)
            error = exc

        self._queue.dequeue_first(expected_id=item.id)
        return ProcessOutcome(processed=True, upload_id=item.id, url=url, error=error)

    def _candidate_refs(self, item: QueueItem, document: BaseDocument) -> list[str]:
        refs = [item.preview_ref]
        with self._runner.document_lock:
            match = find(document, item.id)
        if match is not None:
            refs.append(match.placeholder.ref)
        return refs
