from typing import ClassVar


class ObS3Error(Exception):
    """Base exception for the upload pipeline.

    ``kind`` is a short machine-readable tag; the exception message is the
    human-readable part.
    """

    kind: ClassVar[str] = "error"
