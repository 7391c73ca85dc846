from pathlib import Path

from ob_s3.document.base import BaseDocument, CursorPosition


class TextDocument(BaseDocument):
    """In-memory document backed by a list of lines."""

    def __init__(self, text: str = "", cursor: CursorPosition | None = None) -> None:
        self._lines = text.split("\n")
        self._cursor = cursor or CursorPosition(line=0, ch=0)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]

    def set_line(self, index: int, text: str) -> None:
        self._lines[index] = text

    def get_cursor(self) -> CursorPosition:
        return self._cursor

    def set_cursor(self, position: CursorPosition) -> None:
        self._cursor = position

    def insert_at_selection(self, text: str) -> None:
        line = self._lines[self._cursor.line]
        ch = min(self._cursor.ch, len(line))
        inserted = (line[:ch] + text + line[ch:]).split("\n")
        self._lines[self._cursor.line : self._cursor.line + 1] = inserted
        last_line = self._cursor.line + len(inserted) - 1
        last_ch = len(inserted[-1]) - len(line[ch:])
        self._cursor = CursorPosition(line=last_line, ch=last_ch)


class MarkdownFileDocument(TextDocument):
    """Document loaded from a file; every mutation is written back immediately."""

    def __init__(self, path: Path, cursor: CursorPosition | None = None) -> None:
        self._path = path
        text = path.read_text(encoding="utf-8") if path.exists() else ""
        super().__init__(text, cursor)

    @property
    def path(self) -> Path:
        return self._path

    def set_line(self, index: int, text: str) -> None:
        super().set_line(index, text)
        self._flush()

    def insert_at_selection(self, text: str) -> None:
        super().insert_at_selection(text)
        self._flush()

    def _flush(self) -> None:
        self._path.write_text(self.text, encoding="utf-8")
