from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional, Union

import pytest

from ghostlink.host import MemoryHost
from ghostlink.sync import SyncSession

SETTLE = 0.01

_EOF = object()


class FakeTransport:
    """Queue-fed stand-in for a websockets connection."""

    def __init__(self) -> None:
        self.sent: List[str] = []
        self.closed = False
        self.close_calls = 0
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, payload: Union[dict, str, bytes]) -> None:
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self._inbox.put_nowait(payload)

    def disconnect(self) -> None:
        self._inbox.put_nowait(_EOF)

    @property
    def sent_payloads(self) -> List[dict]:
        return [json.loads(frame) for frame in self.sent]

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self._inbox.put_nowait(_EOF)

    def __aiter__(self) -> "FakeTransport":
        return self

    async def __anext__(self) -> Union[str, bytes]:
        item = await self._inbox.get()
        if item is _EOF:
            raise StopAsyncIteration
        return item


async def settle(session: Optional[SyncSession] = None) -> None:
    """Let queued host notifications run, then wait out pending sends."""

    for _ in range(3):
        await asyncio.sleep(0)
    if session is not None:
        await session.flush()


@pytest.fixture
def host() -> MemoryHost:
    return MemoryHost()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport, host: MemoryHost) -> SyncSession:
    return SyncSession(transport, host, settle_delay=SETTLE, session_id="test")
