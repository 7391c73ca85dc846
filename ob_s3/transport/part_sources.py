from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from ob_s3.transport.models import UploadPart


class PartSource(ABC):
    """Supplies the bytes of one part of a logical payload."""

    @abstractmethod
    def read(self, part: UploadPart) -> bytes:
        """Return exactly ``part.size`` bytes starting at ``part.start``."""

    @abstractmethod
    def size(self) -> int:
        """Total payload size in bytes."""


class BytesPartSource(PartSource):
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)

    def read(self, part: UploadPart) -> bytes:
        return bytes(self._data[part.start : part.end])

    def size(self) -> int:
        return len(self._data)


class FilePartSource(PartSource):
    """Positional reads from a file so the whole payload never sits in memory."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def read(self, part: UploadPart) -> bytes:
        with self._path.open("rb") as handle:
            handle.seek(part.start)
            return handle.read(part.size)

    def size(self) -> int:
        return self._path.stat().st_size


class CallablePartSource(PartSource):
    def __init__(self, provider: Callable[[UploadPart], bytes], total_size: int) -> None:
        self._provider = provider
        self._total_size = total_size

    def read(self, part: UploadPart) -> bytes:
        return self._provider(part)

    def size(self) -> int:
        return self._total_size
