"""Scratch buffer storage used by headless hosts."""

from .buffer import Buffer, BufferDelta, BufferView, Transaction
from .document import BufferDocument
from .state import BufferState, Cursor
from .undo import UndoEntry, UndoTimeline
from .validation import BufferValidationError, ensure_cursor

__all__ = [
    "Buffer",
    "BufferDelta",
    "BufferDocument",
    "BufferState",
    "BufferValidationError",
    "BufferView",
    "Cursor",
    "Transaction",
    "UndoEntry",
    "UndoTimeline",
    "ensure_cursor",
]
