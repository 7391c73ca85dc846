from collections import OrderedDict
from threading import Lock

from ob_s3.payload.models import Payload


class PayloadCache:
    """Session-scoped map from upload id to captured bytes.

    Entries live until ``remove`` or process exit; nothing is persisted. With
    ``capacity`` set the least recently used entry is evicted on overflow.
    """

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: OrderedDict[str, Payload] = OrderedDict()
        self._lock = Lock()

    def put(self, upload_id: str, payload: Payload) -> None:
        with self._lock:
            self._entries[upload_id] = payload
            self._entries.move_to_end(upload_id)
            if self._capacity is not None:
                while len(self._entries) > self._capacity:
                    self._entries.popitem(last=False)

    def take(self, upload_id: str) -> Payload | None:
        """Look up a payload without removing it; retries may need it again."""
        with self._lock:
            payload = self._entries.get(upload_id)
            if payload is not None:
                self._entries.move_to_end(upload_id)
            return payload

    def remove(self, upload_id: str) -> None:
        with self._lock:
            self._entries.pop(upload_id, None)

    def __contains__(self, upload_id: object) -> bool:
        with self._lock:
            return upload_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
