"""Activation entry point tying the listener and status endpoint together."""

from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

from ghostlink.config import BridgeConfig
from ghostlink.host.base import EditorHost
from ghostlink.runtime import telemetry

from .listener import LOGGER_NAME, TransportListener
from .status import StatusResponder

ENABLE_MESSAGE = "Ghost text has been enabled!"


class GhostTextBridge:
    def __init__(self, editor_host: EditorHost, config: Optional[BridgeConfig] = None) -> None:
        self.editor_host = editor_host
        self.config = config or BridgeConfig.from_env()
        self.listener = TransportListener(
            editor_host,
            host=self.config.host,
            port=self.config.websocket_port,
            settle_delay=self.config.settle_delay,
        )
        self.status = StatusResponder(
            self.listener, host=self.config.host, port=self.config.status_port
        )

    @property
    def websocket_port(self) -> Optional[int]:
        return self.listener.port

    @property
    def status_port(self) -> Optional[int]:
        return self.status.port

    async def activate(self) -> "GhostTextBridge":
        await self.listener.start()
        try:
            await self.status.start()
        except OSError:
            await self.listener.stop()
            raise
        telemetry.record_event(
            "bridge.activated",
            data={"status_port": self.status_port, "websocket_port": self.websocket_port},
            logger_name=LOGGER_NAME,
        )
        return self

    async def deactivate(self) -> None:
        await self.status.stop()
        await self.listener.stop()
        telemetry.record_event("bridge.deactivated", logger_name=LOGGER_NAME)

    def enable_command(self) -> None:
        """The user-facing "enable GhostText" command: an acknowledgement only."""

        self.editor_host.show_information(ENABLE_MESSAGE)

    async def __aenter__(self) -> "GhostTextBridge":
        return await self.activate()

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.deactivate()


__all__ = ["ENABLE_MESSAGE", "GhostTextBridge"]
