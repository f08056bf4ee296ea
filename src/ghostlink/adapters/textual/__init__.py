"""Textual front end hosting GhostText sessions."""

from .controller import TextualDocument, TextualEditor, TextualHost, TextualHostHooks

__all__ = ["TextualDocument", "TextualEditor", "TextualHost", "TextualHostHooks"]
