from collections.abc import Iterable

from ob_s3.logging.logger import Log
from ob_s3.payload.cache import PayloadCache
from ob_s3.payload.exceptions import PayloadMissingError, UnsupportedPreviewRefError
from ob_s3.payload.file_loader import PayloadLoader
from ob_s3.payload.models import Payload


class PayloadResolver:
    """Finds upload bytes: session cache first, then local files behind preview refs."""

    def __init__(self, cache: PayloadCache, loader: PayloadLoader) -> None:
        self._cache = cache
        self._loader = loader

    def resolve(
        self,
        upload_id: str,
        refs: Iterable[str],
        mime_type: str,
        filename: str | None = None,
    ) -> Payload:
        """Return the payload, re-caching bytes read from disk.

        Raises:
            PayloadMissingError: if no source yields bytes.
        """
        cached = self._cache.take(upload_id)
        if cached is not None:
            return cached

        for ref in dict.fromkeys(ref for ref in refs if ref):
            try:
                data = self._loader.load(ref)
            except (UnsupportedPreviewRefError, OSError) as exc:
                Log.debug(f"Preview ref unusable: {exc}", upload_id=upload_id, ref=ref)
                continue
            payload = Payload(data=data, mime_type=mime_type, filename=filename)
            self._cache.put(upload_id, payload)
            Log.info("Recovered payload from local file", upload_id=upload_id, ref=ref)
            return payload

        raise PayloadMissingError(f"Local temp missing and no cache for upload {upload_id}")
