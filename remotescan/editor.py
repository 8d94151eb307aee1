"""Line-indexed access to the live content of an open file."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence


class TextDocument(Protocol):
    def line_at(self, index: int) -> str | None:
        """Return the 0-based line *index* without its newline, or ``None``."""
        ...


class StaticDocument:
    """A document backed by an in-memory list of lines."""

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = list(lines)

    @classmethod
    def from_text(cls, text: str) -> StaticDocument:
        return cls(text.splitlines())

    def line_at(self, index: int) -> str | None:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return None

    def __len__(self) -> int:
        return len(self._lines)


class FileDocument(StaticDocument):
    """Snapshot of a file on disk, read once."""

    def __init__(self, path: Path, lines: Sequence[str]) -> None:
        super().__init__(lines)
        self.path = path

    @classmethod
    def load(cls, path: Path) -> FileDocument:
        text = path.read_text(encoding="utf-8", errors="replace")
        return cls(path, text.splitlines())
