"""GhostText protocol and the per-connection sync state machine."""

from .echo import EchoGuard
from .protocol import (
    PROTOCOL_VERSION,
    SYNTAX_PLACEHOLDER,
    InboundMessage,
    OutboundMessage,
    ProtocolParseError,
    status_payload,
)
from .session import SessionState, SyncSession, Transport

__all__ = [
    "EchoGuard",
    "InboundMessage",
    "OutboundMessage",
    "PROTOCOL_VERSION",
    "ProtocolParseError",
    "SYNTAX_PLACEHOLDER",
    "SessionState",
    "SyncSession",
    "Transport",
    "status_payload",
]
