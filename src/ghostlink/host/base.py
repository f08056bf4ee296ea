"""Collaborator interfaces a host editor exposes to sync sessions.

A host provides scratch storage, turns it into documents shown in editors,
and reports document changes and closes. Sessions never talk to a UI
toolkit directly; they only see the protocols below.
"""

from __future__ import annotations

import os
import tempfile
from typing import Callable, List, Optional, Protocol

from ghostlink.runtime import telemetry


class ResourceError(RuntimeError):
    """Raised when a host cannot allocate, open or present a buffer."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class Disposable(Protocol):
    def dispose(self) -> None:
        ...


class CallbackDisposable:
    """Runs ``callback`` on the first ``dispose()`` only."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback: Optional[Callable[[], None]] = callback

    @property
    def disposed(self) -> bool:
        return self._callback is None

    def dispose(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class DisposableList:
    """Subscriptions owned together and released together."""

    def __init__(self) -> None:
        self._items: List[Disposable] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, item: Disposable) -> Disposable:
        self._items.append(item)
        return item

    def dispose_all(self) -> List[Exception]:
        """Dispose every item; failures are collected, not raised."""

        items, self._items = self._items, []
        failures: List[Exception] = []
        for item in items:
            try:
                item.dispose()
            except Exception as exc:
                failures.append(exc)
        return failures


class ScratchResource(Protocol):
    path: str

    def release(self) -> None:
        ...


class TempFileResource:
    """A temp file backing one scratch buffer, removed at most once."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.released = False

    @classmethod
    def create(cls, *, suffix: str = ".txt", prefix: str = "ghostlink-") -> "TempFileResource":
        try:
            fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix)
        except OSError as exc:
            raise ResourceError(f"cannot create scratch file: {exc}", stage="allocate") from exc
        os.close(fd)
        return cls(path)

    def read_text(self) -> str:
        if self.released:
            raise ResourceError(f"{self.path} was already released", stage="open")
        try:
            with open(self.path, encoding="utf-8") as handle:
                return handle.read()
        except OSError as exc:
            raise ResourceError(f"cannot read {self.path}: {exc}", stage="open") from exc

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        telemetry.record_event(
            "host.scratch_released", level="debug", data={"path": self.path}
        )


class Document(Protocol):
    uri: str

    def get_text(self) -> str:
        ...


class Editor(Protocol):
    document: Document

    async def replace_all(self, text: str) -> None:
        ...

    def dispose(self) -> None:
        ...


DocumentCallback = Callable[[Document], None]


class EditorHost(Protocol):
    # True when a change notification is always delivered after the write
    # that caused it has returned to the caller.
    notifies_after_write: bool

    async def create_scratch_resource(self) -> ScratchResource:
        ...

    async def open(self, resource: ScratchResource) -> Document:
        ...

    async def present(self, document: Document, *, title: str) -> Editor:
        ...

    def on_did_change_document(
        self, document: Document, callback: DocumentCallback
    ) -> Disposable:
        ...

    def on_did_close_document(self, callback: DocumentCallback) -> Disposable:
        ...

    def show_information(self, message: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...


__all__ = [
    "CallbackDisposable",
    "Disposable",
    "DisposableList",
    "Document",
    "DocumentCallback",
    "Editor",
    "EditorHost",
    "ResourceError",
    "ScratchResource",
    "TempFileResource",
]
