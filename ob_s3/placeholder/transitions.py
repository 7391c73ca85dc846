from collections.abc import Collection

from ob_s3.document.base import BaseDocument
from ob_s3.placeholder.protocol import (
    EMPTY_REF,
    PlaceholderStatus,
    decode,
    encode_failed,
    encode_uploading,
    find_and_replace,
)


def _replace_when(
    document: BaseDocument,
    upload_id: str,
    allowed: Collection[PlaceholderStatus],
    replacement: str,
) -> bool:
    def replacer(matched: str) -> str | None:
        placeholder = decode(matched)
        if placeholder is None or placeholder.status not in allowed:
            return None
        return replacement

    return find_and_replace(document, upload_id, replacer)


def mark_done(document: BaseDocument, upload_id: str, reference: str) -> bool:
    """uploading|failed -> final reference."""
    return _replace_when(
        document,
        upload_id,
        (PlaceholderStatus.UPLOADING, PlaceholderStatus.FAILED),
        reference,
    )


def mark_failed(document: BaseDocument, upload_id: str, stale_ref: str = EMPTY_REF) -> bool:
    """uploading -> failed, keeping the preview ref for a later retry."""
    return _replace_when(
        document,
        upload_id,
        (PlaceholderStatus.UPLOADING,),
        encode_failed(upload_id, stale_ref or EMPTY_REF),
    )


def mark_uploading(document: BaseDocument, upload_id: str, preview_ref: str) -> bool:
    """failed -> uploading."""
    return _replace_when(
        document,
        upload_id,
        (PlaceholderStatus.FAILED,),
        encode_uploading(upload_id, preview_ref),
    )
