import re
from datetime import datetime

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def _strip_slashes(value: str) -> str:
    return (value or "").strip().strip("/")


def render_date_template(template: str, now: datetime | None = None) -> str:
    """Expand ``{yyyy}``, ``{mm}`` and ``{dd}`` tokens; empty template gives ''."""
    fmt = (template or "").strip()
    if not fmt:
        return ""
    moment = now or datetime.now()
    rendered = (
        fmt.replace("{yyyy}", f"{moment.year:04d}")
        .replace("{mm}", f"{moment.month:02d}")
        .replace("{dd}", f"{moment.day:02d}")
    )
    return _strip_slashes(rendered)


def make_object_key(
    original_name: str | None,
    extension: str,
    prefix: str,
    upload_id: str | None = None,
    date_format: str = "",
    now: datetime | None = None,
) -> str:
    """Build ``prefix/<date>/<name>.<ext>``.

    With an upload id the file name is exactly ``<upload_id>.<ext>`` so every
    attempt for the same upload overwrites the same object.
    """
    pieces = [_strip_slashes(prefix), render_date_template(date_format, now)]
    suffix = f".{extension.lstrip('.')}" if extension else ""

    if upload_id and upload_id.strip():
        file_name = f"{upload_id.strip()}{suffix}"
    else:
        base = _UNSAFE_NAME_CHARS.sub("_", (original_name or "file").strip()) or "file"
        file_name = base if not suffix or base.endswith(suffix) else f"{base}{suffix}"

    pieces.append(file_name)
    return "/".join(piece for piece in pieces if piece)
