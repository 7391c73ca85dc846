from ob_s3.errors import ObS3Error


class PayloadError(ObS3Error):
    """Base exception for payload lookup errors."""

    kind = "payload"


class PayloadMissingError(PayloadError):
    """Raised when neither the cache nor a local file can supply upload bytes."""

    kind = "payload_missing"


class UnsupportedPreviewRefError(PayloadError):
    """Raised when a preview ref does not point at a local file."""

    kind = "unsupported_preview_ref"
