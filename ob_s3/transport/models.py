from dataclasses import dataclass
from enum import Enum


class PartStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class UploadPart:
    """One byte range ``[start, end)`` of a multipart transfer."""

    part_number: int
    start: int
    end: int
    size: int
    etag: str | None = None
    status: PartStatus = PartStatus.PENDING
    retry_count: int = 0


@dataclass(frozen=True)
class PartResult:
    """Outcome of one part attempt; exactly one of ``etag``/``error`` is set."""

    part_number: int
    etag: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.etag is not None


def plan_parts(file_size: int, chunk_size: int) -> list[UploadPart]:
    """Split ``[0, file_size)`` into contiguous parts numbered from 1."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if file_size <= 0:
        raise ValueError("file_size must be positive")
    parts = []
    for index, start in enumerate(range(0, file_size, chunk_size)):
        end = min(start + chunk_size, file_size)
        parts.append(UploadPart(part_number=index + 1, start=start, end=end, size=end - start))
    return parts


def backoff_delay(retry_count: int, base_seconds: float, cap_seconds: float) -> float:
    return min(cap_seconds, base_seconds * (2**retry_count))
