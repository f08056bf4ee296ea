"""Host editor collaborators: scratch storage, documents, notifications."""

from .base import (
    CallbackDisposable,
    Disposable,
    DisposableList,
    Document,
    Editor,
    EditorHost,
    ResourceError,
    ScratchResource,
    TempFileResource,
)
from .events import DocumentEvents
from .memory import MemoryDocument, MemoryEditor, MemoryHost

__all__ = [
    "CallbackDisposable",
    "Disposable",
    "DisposableList",
    "Document",
    "DocumentEvents",
    "Editor",
    "EditorHost",
    "MemoryDocument",
    "MemoryEditor",
    "MemoryHost",
    "ResourceError",
    "ScratchResource",
    "TempFileResource",
]
