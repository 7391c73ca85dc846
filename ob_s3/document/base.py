from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CursorPosition:
    """Zero-based line and column inside a document."""

    line: int
    ch: int


class BaseDocument(ABC):
    """Minimal surface the pipeline needs from the host editor's document."""

    @abstractmethod
    def line_count(self) -> int:
        """Return the number of lines."""

    @abstractmethod
    def get_line(self, index: int) -> str:
        """Return line text without its line terminator."""

    @abstractmethod
    def set_line(self, index: int, text: str) -> None:
        """Replace one whole line."""

    @abstractmethod
    def get_cursor(self) -> CursorPosition:
        """Return the current cursor position."""

    @abstractmethod
    def insert_at_selection(self, text: str) -> None:
        """Insert text at the cursor and move the cursor past it."""
