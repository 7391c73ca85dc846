import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class BlobStore(ABC):
    """Durable key-value blob living outside process memory."""

    @abstractmethod
    def load_blob(self) -> dict[str, Any]:
        """Return the whole persisted object; an empty dict if nothing is stored."""

    @abstractmethod
    def save_blob(self, blob: dict[str, Any]) -> None:
        """Replace the persisted object."""


class JsonFileBlobStore(BlobStore):
    """Blob kept in a JSON file; writes go through a temp file and ``os.replace``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load_blob(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        raw = self._path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not contain a JSON object")
        return data

    def save_blob(self, blob: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(blob, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class MemoryBlobStore(BlobStore):
    """Blob held in memory; survives queue re-creation within one process."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._blob = json.loads(json.dumps(initial or {}))

    def load_blob(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._blob))

    def save_blob(self, blob: dict[str, Any]) -> None:
        self._blob = json.loads(json.dumps(blob))
