from ob_s3.placeholder.protocol import (
    Placeholder,
    PlaceholderMatch,
    PlaceholderStatus,
    decode,
    encode_failed,
    encode_uploading,
    find,
    find_and_replace,
    replace_in_text,
)

__all__ = [
    "Placeholder",
    "PlaceholderMatch",
    "PlaceholderStatus",
    "decode",
    "encode_failed",
    "encode_uploading",
    "find",
    "find_and_replace",
    "replace_in_text",
]
