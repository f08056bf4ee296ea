import pytest

from ghostlink.buffer import (
    Buffer,
    BufferDocument,
    BufferValidationError,
    UndoEntry,
    UndoTimeline,
)


def test_document_round_trips_trailing_newline() -> None:
    document = BufferDocument.from_text("a\nb\n")

    assert document.line_count == 3
    assert document.text == "a\nb\n"
    assert document.end == (2, 0)


def test_replace_all_bumps_version_and_moves_cursor() -> None:
    buffer = Buffer.from_text("hello")

    delta = buffer.replace_all("line one\nline two")

    assert delta.changed is True
    assert buffer.text == "line one\nline two"
    assert buffer.version == 1
    assert buffer.state.cursor == (1, 8)


def test_identical_replace_is_not_a_change() -> None:
    buffer = Buffer.from_text("same")

    delta = buffer.replace_all("same")

    assert delta.changed is False
    assert buffer.version == 0
    assert len(buffer.undo_timeline) == 0


def test_insert_and_replace_ranges() -> None:
    buffer = Buffer.from_text("hello\nworld")

    buffer.insert_text(", dear", cursor=(0, 5))
    buffer.replace_range((1, 0), (1, 1), "W", label="capitalize")

    assert buffer.text == "hello, dear\nWorld"


def test_out_of_range_cursor_is_rejected() -> None:
    buffer = Buffer.from_text("abc")

    with pytest.raises(BufferValidationError) as excinfo:
        buffer.insert_text("x", cursor=(0, 9))

    assert excinfo.value.cursor == (0, 9)


def test_undo_restores_earlier_text() -> None:
    buffer = Buffer.from_text("one")
    buffer.replace_all("two")
    buffer.replace_all("three")

    assert buffer.undo().text == "two"
    assert buffer.undo().text == "one"
    assert buffer.undo() is None
    assert buffer.text == "one"


def test_undo_timeline_respects_limit() -> None:
    timeline = UndoTimeline(limit=2)
    for index in range(3):
        timeline.push(UndoEntry(label=str(index), before_text="", after_text=""))

    assert len(timeline) == 2
    assert timeline.undo().label == "2"
    assert timeline.undo().label == "1"
    assert timeline.can_undo() is False
