import time
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class QueueItem:
    """One durable unit of pending upload work."""

    id: str
    filename: str
    mime_type: str
    preview_ref: str
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))
    size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "QueueItem":
        size = raw.get("size")
        return cls(
            id=str(raw["id"]),
            filename=str(raw.get("filename") or ""),
            mime_type=str(raw.get("mime_type") or raw.get("mime") or "application/octet-stream"),
            preview_ref=str(raw.get("preview_ref") or raw.get("previewUrl") or ""),
            created_at=int(raw.get("created_at") or raw.get("createdAt") or 0),
            size=int(size) if size is not None else None,
        )


@dataclass(frozen=True)
class QueueEvent:
    """Emitted after a queue mutation has been persisted."""

    action: str
    item: QueueItem
