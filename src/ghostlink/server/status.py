"""HTTP status endpoint GhostText clients query before connecting."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from ghostlink.config import DEFAULT_HOST, DEFAULT_STATUS_PORT
from ghostlink.runtime import telemetry
from ghostlink.sync.protocol import status_payload

from .listener import LOGGER_NAME, TransportListener


class StatusResponder:
    """Answers every request with the protocol version and the live port.

    The response is produced in ``process_request``, so no request on this
    port is ever upgraded to a WebSocket.
    """

    def __init__(
        self,
        listener: TransportListener,
        *,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_STATUS_PORT,
    ) -> None:
        self.listener = listener
        self.host = host
        self.requested_port = port
        self.port: Optional[int] = None
        self._server: Optional[Server] = None

    def payload(self) -> dict[str, int]:
        return status_payload(self.listener.port or 0)

    def respond(self, connection: ServerConnection, request: Request) -> Response:
        body = json.dumps(self.payload())
        response = connection.respond(HTTPStatus.OK, body)
        del response.headers["Content-Type"]
        response.headers["Content-Type"] = "application/json"
        telemetry.record_event(
            "status.served",
            level="debug",
            data={"path": request.path, "websocket_port": self.listener.port},
            logger_name=LOGGER_NAME,
        )
        return response

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await serve(
            self._unreachable,
            self.host,
            self.requested_port,
            process_request=self.respond,
        )
        sockets = list(self._server.sockets)
        if sockets:
            self.port = sockets[0].getsockname()[1]
        telemetry.record_event(
            "status.started",
            data={"host": self.host, "port": self.port},
            logger_name=LOGGER_NAME,
        )

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None

    async def _unreachable(self, connection: ServerConnection) -> None:
        await connection.close()


__all__ = ["StatusResponder"]
