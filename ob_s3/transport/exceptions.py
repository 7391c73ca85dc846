from ob_s3.errors import ObS3Error


class TransportError(ObS3Error):
    """Base exception for all transport-related errors."""

    kind = "transport"


class PresignTimeoutError(TransportError):
    """Raised when obtaining a presigned URL exceeds the presign timeout."""

    kind = "presign_timeout"


class UploadTimeoutError(TransportError):
    """Raised when a PUT exceeds the upload timeout."""

    kind = "upload_timeout"


class UploadFailedError(TransportError):
    """Raised when storage answers with a non-2xx status."""

    kind = "upload_failed"

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        detail = f" - {body}" if body else ""
        super().__init__(f"Upload failed: {status}{detail}")


class TransportNetworkError(TransportError):
    """Raised when the connection fails before any HTTP status is received."""

    kind = "network"


class PartUploadError(TransportError):
    """Raised when a multipart part fails after exhausting its retries."""

    kind = "part_upload"

    def __init__(self, message: str, part_number: int | None = None, attempts: int = 0) -> None:
        self.part_number = part_number
        self.attempts = attempts
        super().__init__(message)


class UploadAbortedError(TransportError):
    """Raised when a multipart session was aborted before completing."""

    kind = "aborted"
