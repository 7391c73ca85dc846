from ob_s3.errors import ObS3Error


class QueueIOError(ObS3Error):
    """Raised when the persisted queue cannot be read or written."""

    kind = "queue_io"
