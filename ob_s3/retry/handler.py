from collections.abc import Callable

from ob_s3.document.base import BaseDocument, CursorPosition
from ob_s3.logging.logger import Log
from ob_s3.placeholder.protocol import PlaceholderStatus, iter_line_matches

RetryCallback = Callable[[BaseDocument, str], object]


class RetryHandler:
    """Turns an interaction on a failed placeholder into a re-arm request.

    The interaction column must fall inside the failed placeholder's text
    (retry link included); anything else on the line is ignored.
    """

    def __init__(self, on_retry: RetryCallback) -> None:
        self._on_retry = on_retry

    def locate(self, document: BaseDocument, position: CursorPosition) -> str | None:
        """Return the upload id of the failed placeholder under ``position``."""
        if position.line < 0 or position.line >= document.line_count():
            return None
        line = document.get_line(position.line)
        if "status=failed" not in line or "](#)" not in line:
            return None
        for match in iter_line_matches(line, position.line):
            if match.placeholder.status is not PlaceholderStatus.FAILED:
                continue
            if match.start <= position.ch <= match.end:
                return match.placeholder.upload_id
        return None

    def handle_interaction(
        self, document: BaseDocument, position: CursorPosition | None = None
    ) -> str | None:
        """Re-arm the upload under ``position`` (the cursor by default)."""
        target = position if position is not None else document.get_cursor()
        upload_id = self.locate(document, target)
        if upload_id is None:
            return None
        Log.info("Retry requested", upload_id=upload_id, line=target.line)
        self._on_retry(document, upload_id)
        return upload_id
