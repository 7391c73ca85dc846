import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

from ob_s3.config.exceptions import ConfigurationError
from ob_s3.document.base import BaseDocument
from ob_s3.identifiers.mime import extension_from_mime
from ob_s3.identifiers.object_key import make_object_key
from ob_s3.logging.logger import Log
from ob_s3.payload.cache import PayloadCache
from ob_s3.payload.models import Payload
from ob_s3.placeholder.exceptions import PlaceholderNotFoundError
from ob_s3.placeholder.protocol import render_final_reference
from ob_s3.placeholder.transitions import mark_done, mark_failed
from ob_s3.transport.dispatcher import UploadDispatcher
from ob_s3.transport.exceptions import TransportError
from ob_s3.worker.models import UploadOutcome

KeyPolicy = Callable[[str | None, str, str, str, str], str]
DocumentLock = AbstractContextManager[Any]


class UploadRunner:
    """Upload one payload and settle its placeholder.

    Every placeholder edit happens under ``document_lock``; the pipeline shares
    it so captures, retries and scheduler settlements never interleave.
    """

    def __init__(
        self,
        dispatcher: UploadDispatcher,
        cache: PayloadCache,
        key_prefix: str = "",
        key_date_format: str = "",
        key_policy: KeyPolicy = make_object_key,
        document_lock: DocumentLock | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._cache = cache
        self._key_prefix = key_prefix
        self._key_date_format = key_date_format
        self._key_policy = key_policy
        self.document_lock: DocumentLock = document_lock or threading.RLock()

    def object_key(self, upload_id: str, payload: Payload) -> str:
        return self._key_policy(
            payload.filename,
            extension_from_mime(payload.mime_type),
            self._key_prefix,
            upload_id,
            self._key_date_format,
        )

    def upload(self, upload_id: str, payload: Payload) -> str:
        """Send the payload to storage under its id-derived key and return the URL."""
        key = self.object_key(upload_id, payload)
        Log.info("Uploading", upload_id=upload_id, key=key, size=payload.size)
        return self._dispatcher.upload(key, payload.mime_type, payload.data)

    def settle_success(
        self, document: BaseDocument, upload_id: str, url: str, payload: Payload
    ) -> None:
        """Swap the placeholder for the final reference and drop the cached bytes.

        Raises:
            PlaceholderNotFoundError: if the placeholder is gone; the document
                is left untouched.
        """
        reference = render_final_reference(url, payload.filename or "", payload.mime_type)
        try:
            with self.document_lock:
                settled = mark_done(document, upload_id, reference)
            if not settled:
                raise PlaceholderNotFoundError(
                    f"Upload {upload_id} succeeded but its placeholder was not found"
                )
        finally:
            self._cache.remove(upload_id)

    def run(
        self,
        document: BaseDocument,
        upload_id: str,
        payload: Payload,
        preview_ref: str,
    ) -> UploadOutcome:
        """Direct path: upload now; on failure leave a failed placeholder behind."""
        try:
            url = self.upload(upload_id, payload)
        except TransportError as exc:
            with self.document_lock:
                mark_failed(document, upload_id, preview_ref)
            Log.error(f"Upload {upload_id} failed: {exc}", kind=exc.kind)
            return UploadOutcome(upload_id=upload_id, error=exc)
        except ConfigurationError:
            with self.document_lock:
                mark_failed(document, upload_id, preview_ref)
            raise

        self.settle_success(document, upload_id, url, payload)
        return UploadOutcome(upload_id=upload_id, url=url)
