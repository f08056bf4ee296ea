from __future__ import annotations

import asyncio
import json
import os

import pytest

from conftest import SETTLE, FakeTransport, settle
from ghostlink.host import MemoryEditor, MemoryHost, ResourceError
from ghostlink.sync import SessionState, SyncSession

DOC1 = {"title": "Doc1", "text": "hello"}


async def open_doc1(session: SyncSession) -> None:
    await session.on_message(json.dumps(DOC1))
    await settle(session)


@pytest.mark.asyncio
async def test_first_message_seeds_buffer_without_reply(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)

    assert session.state is SessionState.ACTIVE
    assert session.title == "Doc1"
    assert session.document.get_text() == "hello"
    assert session.last_remote_text == "hello"
    assert host.editor_for("Doc1").document is session.document
    assert transport.sent == []


@pytest.mark.asyncio
async def test_local_edit_is_forwarded_with_title(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)

    host.editor_for("Doc1").type_text(" world", cursor=(0, 5))
    await settle(session)

    assert transport.sent_payloads == [
        {"selections": [], "syntax": "TODO", "text": "hello world", "title": "Doc1"}
    ]


@pytest.mark.asyncio
async def test_undo_of_a_remote_write_is_a_local_edit(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)
    await session.on_message(json.dumps({"text": "hello there"}))
    await settle(session)

    host.editor_for("Doc1").undo()
    await settle(session)

    assert session.document.get_text() == "hello"
    assert [payload["text"] for payload in transport.sent_payloads] == ["hello"]


@pytest.mark.asyncio
async def test_remote_text_matching_buffer_is_not_echoed(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)
    host.editor_for("Doc1").set_text("hello world")
    await settle(session)
    transport.sent.clear()

    await session.on_message(json.dumps({"text": "hello world"}))
    await settle(session)

    assert session.last_remote_text == "hello world"
    assert transport.sent == []


@pytest.mark.asyncio
async def test_remote_updates_are_applied_and_never_echoed(
    session: SyncSession, transport: FakeTransport
) -> None:
    await open_doc1(session)

    for text in ("hello there", "hello there", "bye"):
        await session.on_message(json.dumps({"text": text, "title": "ignored"}))
        await settle(session)

    assert session.document.get_text() == "bye"
    assert session.title == "Doc1"
    assert transport.sent == []


@pytest.mark.asyncio
async def test_each_distinct_local_edit_produces_one_message(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)
    editor = host.editor_for("Doc1")

    editor.set_text("a")
    await settle()
    editor.set_text("ab")
    await settle(session)

    assert [payload["text"] for payload in transport.sent_payloads] == ["a", "ab"]


@pytest.mark.asyncio
async def test_closing_document_closes_transport_and_cleans_up(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)
    resource = session.resource
    editor = host.editor_for("Doc1")

    session.document.close()
    await settle(session)

    assert session.state is SessionState.CLOSED
    assert session.closed is True
    assert transport.closed is True
    assert resource.released is True
    assert not os.path.exists(resource.path)
    assert host.events.listener_count() == 0

    editor.set_text("after close")
    await settle(session)
    assert transport.sent == []


@pytest.mark.asyncio
async def test_change_in_flight_at_close_is_not_sent(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    await open_doc1(session)

    host.editor_for("Doc1").set_text("")
    await settle()
    assert session.pending_tasks == 1
    session.document.close()
    await settle(session)

    assert transport.closed is True
    assert transport.sent == []


@pytest.mark.asyncio
async def test_send_withheld_when_transport_closes_during_settle(
    transport: FakeTransport, host: MemoryHost
) -> None:
    session = SyncSession(transport, host, settle_delay=0.05)
    await open_doc1(session)

    host.editor_for("Doc1").set_text("late")
    await settle()
    session.on_transport_closed()
    await session.flush()

    assert transport.sent == []


@pytest.mark.asyncio
async def test_cleanup_runs_once_from_both_paths(
    session: SyncSession, transport: FakeTransport
) -> None:
    await open_doc1(session)
    releases = []
    release = session.resource.release
    session.resource.release = lambda: (releases.append(1), release())

    session.document.close()
    await settle(session)
    session.on_transport_closed()
    session.cleanup()

    assert releases == [1]
    assert session.cleaned_up is True
    assert len(session.observers) == 0


@pytest.mark.asyncio
async def test_transport_close_keeps_document_open(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    runner = asyncio.create_task(session.run())
    transport.feed(DOC1)
    await settle()
    transport.disconnect()
    await runner

    editor = host.editor_for("Doc1")
    assert session.state is SessionState.CLOSED
    assert session.resource.released is True
    assert editor.disposed is True
    assert editor.document.closed is False
    assert host.events.listener_count() == 0


@pytest.mark.asyncio
async def test_transport_close_before_first_message(
    session: SyncSession, transport: FakeTransport, host: MemoryHost
) -> None:
    transport.disconnect()
    await session.run()

    assert session.state is SessionState.CLOSED
    assert session.cleaned_up is True
    assert session.resource is None
    assert host.resources == []


@pytest.mark.asyncio
async def test_messages_after_close_are_ignored(
    session: SyncSession, transport: FakeTransport
) -> None:
    await open_doc1(session)
    session.on_transport_closed()

    await session.on_message(json.dumps({"text": "too late"}))

    assert session.document.get_text() == "hello"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frame",
    ["not json", "[1, 2]", json.dumps({"title": "x"}), json.dumps({"text": 3}), b"\xff"],
)
async def test_malformed_message_leaves_state_unchanged(
    session: SyncSession, host: MemoryHost, frame
) -> None:
    await session.on_message(frame)

    assert session.state is SessionState.AWAITING_FIRST_MESSAGE
    assert host.notifications and host.notifications[-1][0] == "error"

    await open_doc1(session)
    assert session.state is SessionState.ACTIVE


@pytest.mark.asyncio
async def test_malformed_message_while_active_keeps_text(
    session: SyncSession, transport: FakeTransport
) -> None:
    await open_doc1(session)

    await session.on_message("{broken")
    await settle(session)

    assert session.state is SessionState.ACTIVE
    assert session.document.get_text() == "hello"
    assert transport.sent == []


class BrokenOpenHost(MemoryHost):
    async def open(self, resource):
        raise OSError("disk on fire")


@pytest.mark.asyncio
async def test_resource_failure_marks_session_failed(transport: FakeTransport) -> None:
    host = BrokenOpenHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)
    runner = asyncio.create_task(session.run())

    transport.feed(DOC1)
    transport.feed({"text": "ignored"})
    await settle()

    assert session.state is SessionState.FAILED
    assert host.notifications[-1][0] == "error"
    assert "disk on fire" in host.notifications[-1][1]

    transport.disconnect()
    await runner
    assert session.state is SessionState.CLOSED
    assert host.resources[0].released is True


def test_resource_error_keeps_stage() -> None:
    error = ResourceError("nope", stage="present")

    assert error.stage == "present"
    assert str(error) == "nope"


class SlowPresentHost(MemoryHost):
    async def present(self, document, *, title):
        await asyncio.sleep(0.01)
        return await super().present(document, title=title)


@pytest.mark.asyncio
async def test_messages_are_processed_in_arrival_order(transport: FakeTransport) -> None:
    host = SlowPresentHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)

    await asyncio.gather(
        session.on_message(json.dumps(DOC1)),
        session.on_message(json.dumps({"text": "second"})),
    )
    await settle(session)

    assert session.document.get_text() == "second"
    assert session.last_remote_text == "second"
    assert transport.sent == []


class UnorderedHost(MemoryHost):
    notifies_after_write = False


@pytest.mark.asyncio
async def test_counting_guard_for_hosts_without_ordering(transport: FakeTransport) -> None:
    host = UnorderedHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)
    assert session.echo.counting is True

    await open_doc1(session)
    await session.on_message(json.dumps({"text": "remote"}))
    await settle(session)
    assert transport.sent == []
    assert session.echo.pending_suppressions == 0

    host.editor_for("Doc1").set_text("local")
    await settle(session)
    assert [payload["text"] for payload in transport.sent_payloads] == ["local"]


class ImmediateNotifyHost(UnorderedHost):
    """Delivers change notifications inside the write that caused them."""

    def schedule_change(self, document):
        self._deliver_change(document)


@pytest.mark.asyncio
async def test_counting_guard_with_notifications_during_the_write(
    transport: FakeTransport,
) -> None:
    host = ImmediateNotifyHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)

    await open_doc1(session)
    assert session.echo.pending_suppressions == 0
    assert transport.sent == []

    await session.on_message(json.dumps({"text": "remote"}))
    await settle(session)
    assert session.echo.pending_suppressions == 0
    assert transport.sent == []

    host.editor_for("Doc1").set_text("local edit")
    await settle(session)
    assert [payload["text"] for payload in transport.sent_payloads] == ["local edit"]


class RefusingEditor(MemoryEditor):
    refuse = False

    async def replace_all(self, text: str) -> None:
        if self.refuse:
            raise OSError("write refused")
        await super().replace_all(text)


class RefusingHost(UnorderedHost):
    async def present(self, document, *, title):
        editor = RefusingEditor(document, title)
        self.editors.append(editor)
        return editor


@pytest.mark.asyncio
async def test_failed_remote_write_does_not_swallow_next_edit(
    transport: FakeTransport,
) -> None:
    host = RefusingHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)
    await open_doc1(session)
    editor = host.editor_for("Doc1")

    editor.refuse = True
    await session.on_message(json.dumps({"text": "remote"}))
    await settle(session)

    assert session.state is SessionState.ACTIVE
    assert session.echo.pending_suppressions == 0
    assert session.last_remote_text == "hello"
    assert "write refused" in host.notifications[-1][1]

    editor.set_text("local edit")
    await settle(session)
    assert [payload["text"] for payload in transport.sent_payloads] == ["local edit"]


class GatedPresentHost(MemoryHost):
    def __init__(self) -> None:
        super().__init__()
        self.presenting = asyncio.Event()
        self.release_present = asyncio.Event()

    async def present(self, document, *, title):
        self.presenting.set()
        await self.release_present.wait()
        return await super().present(document, title=title)


@pytest.mark.asyncio
async def test_transport_close_while_presenting_discards_the_editor(
    transport: FakeTransport,
) -> None:
    host = GatedPresentHost()
    session = SyncSession(transport, host, settle_delay=SETTLE)
    opening = asyncio.create_task(session.on_message(json.dumps(DOC1)))
    await host.presenting.wait()

    session.on_transport_closed()
    assert session.cleaned_up is True
    host.release_present.set()
    await opening
    await settle(session)

    assert session.state is SessionState.CLOSED
    assert host.resources[0].released is True
    assert host.editors[0].disposed is True
    assert host.documents[0].get_text() == ""
    assert host.events.listener_count() == 0
    assert transport.sent == []
