from collections.abc import Callable
from threading import RLock
from typing import Any

from ob_s3.logging.logger import Log
from ob_s3.queue.exceptions import QueueIOError
from ob_s3.queue.models import QueueEvent, QueueItem
from ob_s3.queue.store import BlobStore

QUEUE_KEY = "uploadQueue"

QueueListener = Callable[[QueueEvent], None]


class UploadQueue:
    """FIFO of pending uploads persisted in a ``BlobStore``.

    Every read-modify-write runs under one lock so enqueue and dequeue calls
    from the paste path, commands and the scheduler never interleave. The
    queue lives under ``uploadQueue``; other keys of the blob are preserved.
    """

    def __init__(self, store: BlobStore) -> None:
        self._store = store
        self._lock = RLock()
        self._listeners: list[QueueListener] = []

    def subscribe(self, listener: QueueListener) -> None:
        self._listeners.append(listener)

    def items(self) -> list[QueueItem]:
        with self._lock:
            return self._load()

    def __len__(self) -> int:
        return len(self.items())

    def contains(self, upload_id: str) -> bool:
        return any(item.id == upload_id for item in self.items())

    def peek_first(self) -> QueueItem | None:
        items = self.items()
        return items[0] if items else None

    def enqueue(self, item: QueueItem) -> None:
        with self._lock:
            items = self._load()
            items.append(item)
            self._save(items)
        Log.info("Queued upload", upload_id=item.id, queue_length=len(items))
        self._notify(QueueEvent(action="added", item=item))

    def dequeue_first(self, expected_id: str | None = None) -> QueueItem | None:
        """Remove the head item.

        With ``expected_id`` the head is removed only if it still carries that
        id, so a stale peek never drops someone else's work.
        """
        with self._lock:
            items = self._load()
            if not items:
                return None
            head = items[0]
            if expected_id is not None and head.id != expected_id:
                return None
            self._save(items[1:])
        Log.info("Dequeued upload", upload_id=head.id, queue_length=len(items) - 1)
        self._notify(QueueEvent(action="removed", item=head))
        return head

    def remove(self, upload_id: str) -> QueueItem | None:
        """Remove an item wherever it sits, e.g. after a direct retry succeeded."""
        with self._lock:
            items = self._load()
            removed = next((item for item in items if item.id == upload_id), None)
            if removed is None:
                return None
            self._save([item for item in items if item.id != upload_id])
        Log.info("Removed upload from queue", upload_id=upload_id)
        self._notify(QueueEvent(action="removed", item=removed))
        return removed

    def _load(self) -> list[QueueItem]:
        try:
            blob = self._store.load_blob()
            raw_items = blob.get(QUEUE_KEY) or []
            return [QueueItem.from_dict(raw) for raw in raw_items]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise QueueIOError(f"Failed to read upload queue: {exc}") from exc

    def _save(self, items: list[QueueItem]) -> None:
        try:
            blob: dict[str, Any] = self._store.load_blob()
            blob[QUEUE_KEY] = [item.to_dict() for item in items]
            self._store.save_blob(blob)
        except (OSError, ValueError, TypeError) as exc:
            raise QueueIOError(f"Failed to write upload queue: {exc}") from exc

    def _notify(self, event: QueueEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
