from dataclasses import dataclass


@dataclass(frozen=True)
class UploadOutcome:
    """Result of a direct (non-queued) upload or a re-arm.

    Neither ``url`` nor ``error`` set means the upload was handed to the queue.
    """

    upload_id: str
    url: str | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.url is not None and self.error is None

    @property
    def pending(self) -> bool:
        return self.url is None and self.error is None


@dataclass(frozen=True)
class ProcessOutcome:
    """Result of one "process next queue item" call."""

    processed: bool
    upload_id: str | None = None
    url: str | None = None
    error: Exception | None = None
