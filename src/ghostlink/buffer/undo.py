"""Bounded undo history of whole-text edits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(slots=True, frozen=True)
class UndoEntry:
    label: str
    before_text: str
    after_text: str


class UndoTimeline:
    """Undo stack that forgets its oldest entry past ``limit``."""

    def __init__(self, *, limit: int = 200) -> None:
        self._entries: List[UndoEntry] = []
        self._limit = limit

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: UndoEntry) -> None:
        self._entries.append(entry)
        if len(self._entries) > self._limit:
            del self._entries[0]

    def can_undo(self) -> bool:
        return bool(self._entries)

    def undo(self) -> Optional[UndoEntry]:
        if not self.can_undo():
            return None
        return self._entries.pop()
