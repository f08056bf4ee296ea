"""Change/close notification fan-out shared by host implementations."""

from __future__ import annotations

from typing import Dict, List

from .base import CallbackDisposable, Document, DocumentCallback


class DocumentEvents:
    """Per-document change listeners plus global close listeners.

    Emitting iterates over a copy, and listeners disposed mid-emit are
    skipped.
    """

    def __init__(self) -> None:
        self._change: Dict[int, List[DocumentCallback]] = {}
        self._close: List[DocumentCallback] = []

    def on_change(self, document: Document, callback: DocumentCallback) -> CallbackDisposable:
        listeners = self._change.setdefault(id(document), [])
        listeners.append(callback)

        def remove() -> None:
            current = self._change.get(id(document))
            if current and callback in current:
                current.remove(callback)
                if not current:
                    del self._change[id(document)]

        return CallbackDisposable(remove)

    def on_close(self, callback: DocumentCallback) -> CallbackDisposable:
        self._close.append(callback)

        def remove() -> None:
            if callback in self._close:
                self._close.remove(callback)

        return CallbackDisposable(remove)

    def listener_count(self, document: Document | None = None) -> int:
        if document is None:
            return sum(map(len, self._change.values())) + len(self._close)
        return len(self._change.get(id(document), ()))

    def emit_change(self, document: Document) -> None:
        for callback in list(self._change.get(id(document), ())):
            if callback in self._change.get(id(document), ()):
                callback(document)

    def emit_close(self, document: Document) -> None:
        self._change.pop(id(document), None)
        for callback in list(self._close):
            if callback in self._close:
                callback(document)


__all__ = ["DocumentEvents"]
