"""Line-based text storage backing scratch buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


@dataclass(slots=True)
class BufferDocument:
    """Text kept as a list of lines plus a monotonically bumped version.

    A trailing newline is represented by a final empty line, so
    ``from_text(t).text == t`` for every ``t``.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0

    @classmethod
    def from_text(cls, text: str, *, version: int = 0) -> "BufferDocument":
        return cls(_lines=text.split("\n"), version=version)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def end(self) -> Tuple[int, int]:
        """Cursor just past the last character."""

        return (len(self._lines) - 1, len(self._lines[-1]))

    def snapshot(self) -> Sequence[str]:
        return tuple(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]

    def with_text(self, text: str) -> "BufferDocument":
        """Return a document holding ``text`` one version ahead of this one."""

        return BufferDocument.from_text(text, version=self.version + 1)
