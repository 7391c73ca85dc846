_IMAGE_EXTENSIONS = (
    ("png", "png"),
    ("jpeg", "jpg"),
    ("jpg", "jpg"),
    ("gif", "gif"),
    ("webp", "webp"),
    ("svg", "svg"),
    ("bmp", "bmp"),
    ("tiff", "tiff"),
)

_AUDIO_EXTENSIONS = (("mpeg", "mp3"), ("mp3", "mp3"), ("wav", "wav"), ("ogg", "ogg"))

_VIDEO_EXTENSIONS = (
    ("mp4", "mp4"),
    ("webm", "webm"),
    ("ogg", "ogv"),
    ("quicktime", "mov"),
    ("mov", "mov"),
)

_ARCHIVE_EXTENSIONS = (("pdf", "pdf"), ("zip", "zip"), ("rar", "rar"), ("7z", "7z"))

DEFAULT_EXTENSION = "bin"
DEFAULT_MIME_TYPE = "application/octet-stream"


def _first_match(mime: str, table: tuple[tuple[str, str], ...]) -> str | None:
    for needle, extension in table:
        if needle in mime:
            return extension
    return None


def extension_from_mime(mime_type: str) -> str:
    """Infer a file extension from a MIME type, falling back to ``bin``."""
    if not mime_type:
        return DEFAULT_EXTENSION
    mime = mime_type.lower()
    found = _first_match(mime, _IMAGE_EXTENSIONS)
    if found is None and "audio/" in mime:
        found = _first_match(mime, _AUDIO_EXTENSIONS)
    if found is None and "video/" in mime:
        found = _first_match(mime, _VIDEO_EXTENSIONS)
    if found is None:
        found = _first_match(mime, _ARCHIVE_EXTENSIONS)
    return found or DEFAULT_EXTENSION


def is_image(mime_type: str) -> bool:
    return (mime_type or "").lower().startswith("image/")
