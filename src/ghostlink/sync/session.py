"""Per-connection synchronization between a GhostText client and one buffer.

Lifecycle::

    AWAITING_FIRST_MESSAGE --message--> ACTIVE --close--> CLOSED
            |                             |
            +--resource failure--> FAILED +--transport close--> CLOSED

The first inbound message materializes a scratch document in the host and
seeds it; later messages overwrite it. Local edits are forwarded after a
settling delay unless they are the echo of the last remote write.
"""

from __future__ import annotations

import asyncio
import uuid
from enum import Enum
from typing import AsyncIterator, Awaitable, Optional, Protocol, Set, TypeVar

from websockets.exceptions import ConnectionClosed

from ghostlink.config import DEFAULT_SETTLE_DELAY_MS
from ghostlink.host.base import (
    Document,
    DisposableList,
    Editor,
    EditorHost,
    ResourceError,
    ScratchResource,
)
from ghostlink.runtime import telemetry

from .echo import EchoGuard
from .protocol import InboundMessage, OutboundMessage, ProtocolParseError, RawFrame

LOGGER_NAME = "ghostlink.sync"

T = TypeVar("T")


class Transport(Protocol):
    """Duplex text-frame stream; a ``websockets`` connection satisfies it."""

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[RawFrame]:
        ...


class SessionState(str, Enum):
    AWAITING_FIRST_MESSAGE = "awaiting_first_message"
    ACTIVE = "active"
    FAILED = "failed"
    CLOSED = "closed"


class SyncSession:
    def __init__(
        self,
        transport: Transport,
        host: EditorHost,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY_MS / 1000.0,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex[:8]
        self.transport = transport
        self.host = host
        self.settle_delay = settle_delay
        self.state = SessionState.AWAITING_FIRST_MESSAGE
        self.title: Optional[str] = None
        self.resource: Optional[ScratchResource] = None
        self.document: Optional[Document] = None
        self.editor: Optional[Editor] = None
        self.closed = False
        self.observers = DisposableList()
        self.echo = EchoGuard(counting=not getattr(host, "notifies_after_write", True))
        self._tasks: Set[asyncio.Task[None]] = set()
        self._message_lock = asyncio.Lock()
        self._cleaned_up = False

    @property
    def last_remote_text(self) -> Optional[str]:
        return self.echo.last_remote_text

    @property
    def cleaned_up(self) -> bool:
        return self._cleaned_up

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def run(self) -> None:
        """Consume inbound frames until the transport closes, then clean up."""

        self._event("session.open")
        try:
            async for raw in self.transport:
                await self.on_message(raw)
        except ConnectionClosed as exc:
            self._event("session.transport_error", level="debug", reason=str(exc))
        finally:
            self.on_transport_closed()

    async def on_message(self, raw: RawFrame) -> None:
        async with self._message_lock:
            if self.state in (SessionState.CLOSED, SessionState.FAILED):
                self._event("session.message_ignored", level="debug", state=self.state.value)
                return
            try:
                message = InboundMessage.parse(raw)
            except ProtocolParseError as exc:
                self._event("session.parse_error", level="warning", reason=str(exc))
                self.host.show_error(f"GhostText: ignored malformed message ({exc})")
                return

            if self.state is SessionState.AWAITING_FIRST_MESSAGE:
                await self._open_buffer(message)
            else:
                await self._apply_remote(message.text)

    async def _open_buffer(self, message: InboundMessage) -> None:
        self.title = message.title or ""
        with telemetry.span(
            "session::open_buffer",
            logger_name=LOGGER_NAME,
            component="session",
            metadata={"session": self.id, "title": self.title},
        ):
            try:
                self.resource = await self._stage(
                    "allocate", self.host.create_scratch_resource()
                )
                self.document = await self._stage("open", self.host.open(self.resource))
                self.editor = await self._stage(
                    "present", self.host.present(self.document, title=self.title)
                )
                if self.closed:
                    # The transport closed while present() was pending and
                    # cleanup ran without this editor.
                    self.resource.release()
                    self.editor.dispose()
                    return
                if self.echo.counting:
                    # The seed's notification may arrive during the write.
                    self._observe()
                await self._stage("seed", self._write_remote(message.text))
            except ResourceError as exc:
                for failure in self.observers.dispose_all():
                    self._event("session.cleanup_failed", level="warning", reason=str(failure))
                self.state = SessionState.FAILED
                self._event(
                    "session.resource_error", level="error", stage=exc.stage, reason=str(exc)
                )
                self.host.show_error(
                    f"GhostText: could not open an editor for '{self.title}': {exc}"
                )
                return

            if not self.observers:
                self._observe()
            self.state = SessionState.ACTIVE
        self._event("session.seeded", length=len(message.text))

    def _observe(self) -> None:
        assert self.document is not None
        self.observers.push(
            self.host.on_did_change_document(self.document, self._on_document_changed)
        )
        self.observers.push(self.host.on_did_close_document(self._on_document_closed))

    async def _apply_remote(self, text: str) -> None:
        try:
            await self._write_remote(text)
        except Exception as exc:
            self._event("session.write_failed", level="error", reason=str(exc))
            self.host.show_error(f"GhostText: could not update '{self.title}': {exc}")
            return
        self._event("session.remote_applied", level="debug", length=len(text))

    async def _write_remote(self, text: str) -> None:
        assert self.editor is not None and self.document is not None
        armed = self.echo.before_remote_write(self.document.get_text(), text)
        try:
            await self.editor.replace_all(text)
        except Exception:
            if armed:
                self.echo.cancel_remote_write()
            raise
        # Must follow the write: the change notification for this edit
        # compares against it.
        self.echo.after_remote_write(text)

    async def _stage(self, stage: str, pending: Awaitable[T]) -> T:
        try:
            return await pending
        except ResourceError:
            raise
        except Exception as exc:
            raise ResourceError(str(exc) or type(exc).__name__, stage=stage) from exc

    def _on_document_changed(self, document: Document) -> None:
        if self.closed or document is not self.document:
            return
        text = document.get_text()
        if self.echo.is_echo(text):
            self._event("session.echo_suppressed", level="debug")
            return
        outbound = OutboundMessage(text=text, title=self.title or "")
        self._spawn(self._send_after_settle(outbound))

    async def _send_after_settle(self, outbound: OutboundMessage) -> None:
        await asyncio.sleep(self.settle_delay)
        if self.closed:
            self._event("session.late_send_suppressed", level="debug")
            return
        try:
            await self.transport.send(outbound.to_json())
        except ConnectionClosed as exc:
            self._event("session.send_failed", level="warning", reason=str(exc))
            return
        self._event("session.local_forwarded", level="debug", length=len(outbound.text))

    def _on_document_closed(self, document: Document) -> None:
        if self.closed or document is not self.document:
            return
        self.closed = True
        self.state = SessionState.CLOSED
        self._event("session.closed", origin="editor")
        self._spawn(self._close_transport())
        self.cleanup()

    async def _close_transport(self) -> None:
        try:
            await self.transport.close()
        except Exception as exc:
            self._event("session.transport_close_failed", level="warning", reason=str(exc))

    def on_transport_closed(self) -> None:
        if not self.closed:
            self.closed = True
            self._event("session.closed", origin="transport")
        self.state = SessionState.CLOSED
        self.cleanup()

    def cleanup(self) -> None:
        """Release the scratch resource and every observer; safe to repeat."""

        if self._cleaned_up:
            return
        self._cleaned_up = True
        if self.resource is not None:
            try:
                self.resource.release()
            except Exception as exc:
                self._event("session.cleanup_failed", level="warning", reason=str(exc))
        if self.editor is not None:
            try:
                self.editor.dispose()
            except Exception as exc:
                self._event("session.cleanup_failed", level="warning", reason=str(exc))
        for exc in self.observers.dispose_all():
            self._event("session.cleanup_failed", level="warning", reason=str(exc))

    async def flush(self) -> None:
        """Wait for pending delayed sends and transport closes."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _event(self, name: str, *, level: str = "info", **data: object) -> None:
        telemetry.record_event(
            name,
            level=level,
            data={"session": self.id, "title": self.title, **data},
            logger_name=LOGGER_NAME,
        )


__all__ = ["SessionState", "SyncSession", "Transport"]
