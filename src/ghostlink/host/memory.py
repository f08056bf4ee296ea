"""Headless host keeping every session document in an in-memory ``Buffer``.

Change and close notifications are queued with ``loop.call_soon`` so they
reach observers on a later loop iteration than the edit that caused them,
the same ordering an interactive editor gives.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from ghostlink.buffer import Buffer, BufferDelta, Cursor
from ghostlink.runtime import telemetry

from .base import (
    Disposable,
    DocumentCallback,
    ResourceError,
    ScratchResource,
    TempFileResource,
)
from .events import DocumentEvents


class MemoryDocument:
    def __init__(self, host: "MemoryHost", resource: ScratchResource, text: str) -> None:
        self.host = host
        self.uri = resource.path
        self.buffer = Buffer.from_text(text, name=resource.path)
        self.closed = False

    def get_text(self) -> str:
        return self.buffer.text

    def close(self) -> None:
        """Close the document as if the user closed its editor tab."""

        self.host.close_document(self)

    def _edit(self, delta: BufferDelta) -> BufferDelta:
        if delta.changed:
            self.host.schedule_change(self)
        return delta


class MemoryEditor:
    def __init__(self, document: MemoryDocument, title: str) -> None:
        self.document = document
        self.title = title
        self.disposed = False

    async def replace_all(self, text: str) -> None:
        if self.document.closed:
            return
        self.document._edit(self.document.buffer.replace_all(text))

    def type_text(self, text: str, *, cursor: Optional[Cursor] = None) -> BufferDelta:
        """Insert ``text`` the way a user typing in the editor would."""

        return self.document._edit(self.document.buffer.insert_text(text, cursor=cursor))

    def set_text(self, text: str) -> BufferDelta:
        """Replace the whole document as a local (user) edit."""

        return self.document._edit(
            self.document.buffer.replace_all(text, label="local_replace")
        )

    def undo(self) -> Optional[BufferDelta]:
        delta = self.document.buffer.undo()
        return self.document._edit(delta) if delta else None

    def dispose(self) -> None:
        self.disposed = True


class MemoryHost:
    notifies_after_write = True

    def __init__(self, *, scratch_suffix: str = ".txt") -> None:
        self.scratch_suffix = scratch_suffix
        self.events = DocumentEvents()
        self.resources: List[TempFileResource] = []
        self.documents: List[MemoryDocument] = []
        self.editors: List[MemoryEditor] = []
        self.notifications: List[Tuple[str, str]] = []

    async def create_scratch_resource(self) -> ScratchResource:
        resource = TempFileResource.create(suffix=self.scratch_suffix)
        self.resources.append(resource)
        return resource

    async def open(self, resource: ScratchResource) -> MemoryDocument:
        if not isinstance(resource, TempFileResource):
            raise ResourceError(f"unsupported resource {resource!r}", stage="open")
        document = MemoryDocument(self, resource, resource.read_text())
        self.documents.append(document)
        return document

    async def present(self, document: MemoryDocument, *, title: str) -> MemoryEditor:
        if document.closed:
            raise ResourceError(f"{document.uri} is closed", stage="present")
        editor = MemoryEditor(document, title)
        self.editors.append(editor)
        return editor

    def on_did_change_document(
        self, document: MemoryDocument, callback: DocumentCallback
    ) -> Disposable:
        return self.events.on_change(document, callback)

    def on_did_close_document(self, callback: DocumentCallback) -> Disposable:
        return self.events.on_close(callback)

    def schedule_change(self, document: MemoryDocument) -> None:
        asyncio.get_running_loop().call_soon(self._deliver_change, document)

    def _deliver_change(self, document: MemoryDocument) -> None:
        if not document.closed:
            self.events.emit_change(document)

    def close_document(self, document: MemoryDocument) -> None:
        if document.closed:
            return
        document.closed = True
        asyncio.get_running_loop().call_soon(self.events.emit_close, document)

    def editor_for(self, title: str) -> MemoryEditor:
        for editor in reversed(self.editors):
            if editor.title == title:
                return editor
        raise KeyError(f"no editor titled {title!r}")

    def show_information(self, message: str) -> None:
        self.notifications.append(("information", message))
        telemetry.record_event("host.notify", data={"severity": "information", "message": message})

    def show_error(self, message: str) -> None:
        self.notifications.append(("error", message))
        telemetry.record_event(
            "host.notify", level="error", data={"severity": "error", "message": message}
        )


__all__ = ["MemoryDocument", "MemoryEditor", "MemoryHost"]
