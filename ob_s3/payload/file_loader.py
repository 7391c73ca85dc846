from pathlib import Path

from ob_s3.identifiers.mime import extension_from_mime
from ob_s3.payload.exceptions import UnsupportedPreviewRefError
from ob_s3.payload.models import Payload

BLOB_REF_PREFIX = "blob:"
_REMOTE_PREFIXES = ("blob:", "http://", "https://", "data:", "#")


def blob_ref(upload_id: str) -> str:
    """Ephemeral preview ref used when no local temp copy is kept."""
    return f"{BLOB_REF_PREFIX}ob-s3/{upload_id}"


def is_local_ref(ref: str) -> bool:
    cleaned = strip_query(ref)
    return bool(cleaned) and not cleaned.startswith(_REMOTE_PREFIXES)


def strip_query(ref: str) -> str:
    return (ref or "").split("?", 1)[0].strip()


class PayloadLoader:
    """Reads and writes local temp copies of captured payloads.

    Preview refs are paths relative to ``base_dir`` (the document's root),
    e.g. ``.obs3/assets/<id>.png``.
    """

    def __init__(self, base_dir: Path, temp_root: str = ".obs3/assets") -> None:
        self._base_dir = base_dir
        self._temp_root = temp_root.strip("/")

    def save_temp(self, upload_id: str, payload: Payload) -> str:
        """Write the payload under the temp root and return its preview ref."""
        ref = f"{self._temp_root}/{upload_id}.{extension_from_mime(payload.mime_type)}"
        path = self._resolve_path(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload.data)
        return ref

    def load(self, ref: str) -> bytes:
        """Read bytes behind a local preview ref.

        Raises:
            UnsupportedPreviewRefError: if the ref is a blob/remote/empty ref.
            FileNotFoundError: if the file does not exist at the resolved path.
        """
        if not is_local_ref(ref):
            raise UnsupportedPreviewRefError(f"preview ref '{ref}' is not a local file")
        path = self._resolve_path(ref)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def _resolve_path(self, ref: str) -> Path:
        return self._base_dir / strip_query(ref).lstrip("/")
