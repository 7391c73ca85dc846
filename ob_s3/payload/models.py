from dataclasses import dataclass

from ob_s3.identifiers.mime import DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class Payload:
    """Binary asset captured from the host application."""

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)
