"""Network surface: WebSocket listener, status endpoint, bridge."""

from .bridge import ENABLE_MESSAGE, GhostTextBridge
from .listener import TransportListener
from .status import StatusResponder

__all__ = ["ENABLE_MESSAGE", "GhostTextBridge", "StatusResponder", "TransportListener"]
