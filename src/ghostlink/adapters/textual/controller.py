"""Editor host backed by Textual ``TextArea`` widgets.

The controller stays free of Textual imports: the app hands it a set of
hooks that mount and unmount editor widgets and show notifications, and
forwards ``TextArea.Changed`` events back through ``handle_widget_changed``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ghostlink.host.base import (
    Disposable,
    DocumentCallback,
    ResourceError,
    ScratchResource,
    TempFileResource,
)
from ghostlink.host.events import DocumentEvents
from ghostlink.runtime import telemetry

LOGGER_NAME = "ghostlink.textual"


class EditorWidget(Protocol):
    """The slice of ``textual.widgets.TextArea`` the host relies on."""

    text: str
    document: Any

    def replace(self, insert: str, start: Any, end: Any) -> Any:
        ...


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualHostHooks:
    """Callbacks the Textual app provides to the host."""

    mount_editor: Callable[[str, str], Awaitable[EditorWidget]]
    unmount_editor: Callable[[EditorWidget], Awaitable[None]]
    notify: Callable[[str, str], None] = _noop
    mark_detached: Callable[[EditorWidget], None] = _noop


class TextualDocument:
    def __init__(self, host: "TextualHost", resource: ScratchResource, initial_text: str) -> None:
        self.host = host
        self.uri = resource.path
        self.initial_text = initial_text
        self.widget: Optional[EditorWidget] = None
        self.closed = False

    def get_text(self) -> str:
        if self.widget is None:
            return self.initial_text
        return self.widget.text


class TextualEditor:
    def __init__(self, host: "TextualHost", document: TextualDocument, widget: EditorWidget) -> None:
        self.host = host
        self.document = document
        self.widget = widget
        self.disposed = False

    async def replace_all(self, text: str) -> None:
        # TextArea posts Changed from inside replace(); the message is
        # handled on a later loop iteration.
        widget = self.widget
        widget.replace(text, (0, 0), widget.document.end)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if not self.document.closed:
            self.host.hooks.mark_detached(self.widget)


class TextualHost:
    notifies_after_write = True

    def __init__(self, hooks: TextualHostHooks, *, scratch_suffix: str = ".txt") -> None:
        self.hooks = hooks
        self.scratch_suffix = scratch_suffix
        self.events = DocumentEvents()
        self._by_widget: Dict[int, TextualDocument] = {}

    async def create_scratch_resource(self) -> ScratchResource:
        return TempFileResource.create(suffix=self.scratch_suffix)

    async def open(self, resource: ScratchResource) -> TextualDocument:
        if not isinstance(resource, TempFileResource):
            raise ResourceError(f"unsupported resource {resource!r}", stage="open")
        return TextualDocument(self, resource, resource.read_text())

    async def present(self, document: TextualDocument, *, title: str) -> TextualEditor:
        widget = await self.hooks.mount_editor(title or "GhostText", document.initial_text)
        document.widget = widget
        self._by_widget[id(widget)] = document
        telemetry.record_event(
            "textual.presented",
            data={"title": title, "uri": document.uri},
            logger_name=LOGGER_NAME,
        )
        return TextualEditor(self, document, widget)

    def on_did_change_document(
        self, document: TextualDocument, callback: DocumentCallback
    ) -> Disposable:
        return self.events.on_change(document, callback)

    def on_did_close_document(self, callback: DocumentCallback) -> Disposable:
        return self.events.on_close(callback)

    def document_for(self, widget: EditorWidget) -> Optional[TextualDocument]:
        return self._by_widget.get(id(widget))

    def handle_widget_changed(self, widget: EditorWidget) -> None:
        document = self.document_for(widget)
        if document is not None and not document.closed:
            self.events.emit_change(document)

    async def close_widget(self, widget: EditorWidget) -> bool:
        """Close the document shown in ``widget``; False if it is not ours."""

        document = self._by_widget.pop(id(widget), None)
        if document is None:
            return False
        document.closed = True
        await self.hooks.unmount_editor(widget)
        self.events.emit_close(document)
        return True

    def show_information(self, message: str) -> None:
        self.hooks.notify(message, "information")

    def show_error(self, message: str) -> None:
        telemetry.record_event(
            "textual.error_notified", level="warning", data={"message": message},
            logger_name=LOGGER_NAME,
        )
        self.hooks.notify(message, "error")


__all__ = [
    "EditorWidget",
    "TextualDocument",
    "TextualEditor",
    "TextualHost",
    "TextualHostHooks",
]
