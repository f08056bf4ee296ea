"""GhostText wire format: JSON text frames carrying the full buffer text."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

PROTOCOL_VERSION = 1
# Selection and syntax-mode sync are not implemented; outbound frames
# always carry these placeholders.
SYNTAX_PLACEHOLDER = "TODO"

RawFrame = Union[str, bytes]


class ProtocolParseError(ValueError):
    """Raised for an inbound frame that is not a valid GhostText message."""

    def __init__(self, message: str, *, raw: RawFrame) -> None:
        super().__init__(message)
        self.raw = raw


@dataclass(frozen=True, slots=True)
class InboundMessage:
    text: str
    title: Optional[str] = None

    @classmethod
    def parse(cls, raw: RawFrame) -> "InboundMessage":
        if isinstance(raw, bytes):
            try:
                raw_text = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ProtocolParseError(f"frame is not UTF-8: {exc}", raw=raw) from exc
        else:
            raw_text = raw

        try:
            payload: Any = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise ProtocolParseError(f"frame is not JSON: {exc.msg}", raw=raw) from exc

        if not isinstance(payload, dict):
            raise ProtocolParseError("frame must be a JSON object", raw=raw)

        text = payload.get("text")
        if not isinstance(text, str):
            raise ProtocolParseError("'text' must be a string", raw=raw)

        title = payload.get("title")
        if title is not None and not isinstance(title, str):
            raise ProtocolParseError("'title' must be a string", raw=raw)

        return cls(text=text, title=title)


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    text: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selections": [],
            "syntax": SYNTAX_PLACEHOLDER,
            "text": self.text,
            "title": self.title,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def status_payload(websocket_port: int) -> Dict[str, int]:
    """Body of the HTTP status response."""

    return {"ProtocolVersion": PROTOCOL_VERSION, "WebSocketPort": websocket_port}


__all__ = [
    "InboundMessage",
    "OutboundMessage",
    "PROTOCOL_VERSION",
    "ProtocolParseError",
    "RawFrame",
    "SYNTAX_PLACEHOLDER",
    "status_payload",
]
