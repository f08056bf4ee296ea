"""Editable scratch buffer: document storage, cursor state and undo."""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import ContextManager, Optional

from ghostlink.runtime import telemetry

from .document import BufferDocument
from .state import BufferState, Cursor
from .undo import UndoEntry, UndoTimeline
from .validation import ensure_cursor


@dataclass(slots=True)
class BufferView:
    version: int
    text: str
    cursor: Cursor


@dataclass(slots=True)
class BufferDelta:
    version: int
    text: str
    label: str
    changed: bool


class Buffer:
    def __init__(
        self,
        *,
        name: str = "scratch",
        document: Optional[BufferDocument] = None,
        state: Optional[BufferState] = None,
        undo: Optional[UndoTimeline] = None,
    ) -> None:
        self.name = name
        self.document = document or BufferDocument()
        self.state = state or BufferState()
        self.undo_timeline = undo or UndoTimeline()

    @classmethod
    def from_text(cls, text: str, *, name: str = "scratch") -> "Buffer":
        return cls(name=name, document=BufferDocument.from_text(text))

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def version(self) -> int:
        return self.document.version

    def snapshot(self) -> BufferView:
        return BufferView(
            version=self.document.version,
            text=self.document.text,
            cursor=self.state.cursor,
        )

    def replace_range(
        self, start: Cursor, end: Cursor, text: str, *, label: str
    ) -> BufferDelta:
        start = ensure_cursor(self.document, start)
        end = ensure_cursor(self.document, end)
        if start > end:
            start, end = end, start
        with Transaction(self, label) as tx:
            before = self.document.text
            start_offset = _offset_for_cursor(self.document, start)
            end_offset = _offset_for_cursor(self.document, end)
            after = before[:start_offset] + text + before[end_offset:]
            tx.apply(before, after, cursor_offset=start_offset + len(text))
        return tx.delta()

    def replace_all(self, text: str, *, label: str = "replace_all") -> BufferDelta:
        return self.replace_range((0, 0), self.document.end, text, label=label)

    def insert_text(self, text: str, *, cursor: Optional[Cursor] = None) -> BufferDelta:
        position = cursor or self.state.cursor
        return self.replace_range(position, position, text, label="insert_text")

    def undo(self) -> Optional[BufferDelta]:
        entry = self.undo_timeline.undo()
        if entry is None:
            return None
        return self._restore(entry.before_text, label=f"undo::{entry.label}")

    def _restore(self, text: str, *, label: str) -> BufferDelta:
        self.document = self.document.with_text(text)
        self.state.set_cursor(*self.document.end)
        return BufferDelta(
            version=self.document.version, text=text, label=label, changed=True
        )


class Transaction(AbstractContextManager["Transaction"]):
    """Applies one edit inside a telemetry span and records it for undo."""

    def __init__(self, buffer: Buffer, label: str) -> None:
        self.buffer = buffer
        self.label = label
        self.changed = False
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            f"buffer::{self.label}",
            component="buffer",
            metadata={"buffer": self.buffer.name},
        )
        self._span_cm.__enter__()
        return self

    def apply(self, before: str, after: str, *, cursor_offset: int) -> None:
        buffer = self.buffer
        self.changed = before != after
        if self.changed:
            buffer.document = buffer.document.with_text(after)
            buffer.undo_timeline.push(
                UndoEntry(label=self.label, before_text=before, after_text=after)
            )
        buffer.state.set_cursor(*_cursor_from_offset(buffer.document, cursor_offset))

    def delta(self) -> BufferDelta:
        return BufferDelta(
            version=self.buffer.document.version,
            text=self.buffer.document.text,
            label=self.label,
            changed=self.changed,
        )

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False


def _offset_for_cursor(document: BufferDocument, cursor: Cursor) -> int:
    row, col = cursor
    lines = document.snapshot()
    return sum(len(lines[i]) + 1 for i in range(row)) + col  # +1 for newline


def _cursor_from_offset(document: BufferDocument, offset: int) -> Cursor:
    running = 0
    lines = document.snapshot()
    for row, line in enumerate(lines):
        if offset <= running + len(line):
            return (row, offset - running)
        running += len(line) + 1
    return document.end
