"""WebSocket listener spawning one ``SyncSession`` per connection."""

from __future__ import annotations

from typing import Callable, Optional, Set

from websockets.asyncio.server import Server, ServerConnection, serve

from ghostlink.config import DEFAULT_HOST, DEFAULT_SETTLE_DELAY_MS
from ghostlink.host.base import EditorHost
from ghostlink.runtime import telemetry
from ghostlink.sync.session import SyncSession, Transport

LOGGER_NAME = "ghostlink.server"

SessionFactory = Callable[[Transport], SyncSession]


class TransportListener:
    """Accepts GhostText connections on ``host:port`` (port 0 = ephemeral)."""

    def __init__(
        self,
        editor_host: EditorHost,
        *,
        host: str = DEFAULT_HOST,
        port: int = 0,
        settle_delay: float = DEFAULT_SETTLE_DELAY_MS / 1000.0,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.editor_host = editor_host
        self.host = host
        self.requested_port = port
        self.port: Optional[int] = None
        self.settle_delay = settle_delay
        self.sessions: Set[SyncSession] = set()
        self._session_factory = session_factory or self._default_session
        self._server: Optional[Server] = None

    @property
    def running(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await serve(self._handle_connection, self.host, self.requested_port)
        sockets = list(self._server.sockets)
        if sockets:
            self.port = sockets[0].getsockname()[1]
        telemetry.record_event(
            "listener.started",
            data={"host": self.host, "port": self.port},
            logger_name=LOGGER_NAME,
        )

    async def stop(self) -> None:
        """Stop accepting connections; running sessions are left alone."""

        if self._server is None:
            return
        self._server.close(close_connections=False)
        self._server = None
        telemetry.record_event(
            "listener.stopped",
            data={"port": self.port, "live_sessions": len(self.sessions)},
            logger_name=LOGGER_NAME,
        )

    def _default_session(self, transport: Transport) -> SyncSession:
        return SyncSession(transport, self.editor_host, settle_delay=self.settle_delay)

    async def _handle_connection(self, connection: ServerConnection) -> None:
        session = self._session_factory(connection)
        self.sessions.add(session)
        telemetry.record_event(
            "listener.accepted",
            data={"session": session.id, "peer": connection.remote_address},
            logger_name=LOGGER_NAME,
        )
        try:
            await session.run()
        except Exception as exc:
            telemetry.record_event(
                "listener.session_crashed",
                level="error",
                data={"session": session.id, "reason": repr(exc)},
                logger_name=LOGGER_NAME,
            )
            session.on_transport_closed()
        finally:
            self.sessions.discard(session)


__all__ = ["SessionFactory", "TransportListener"]
