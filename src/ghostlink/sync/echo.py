"""Tells remote-origin buffer changes apart from local edits."""

from __future__ import annotations

from typing import Optional


class EchoGuard:
    """Decides whether a change notification echoes a remote write.

    Comparison mode (the default) treats a change as an echo when the buffer
    text equals the last remote text. It requires the host to deliver the
    change notification only after ``after_remote_write`` ran.

    Counting mode is for hosts without that ordering: every remote write
    that actually alters the text arms one suppression, and the next change
    notification consumes it.
    """

    def __init__(self, *, counting: bool = False) -> None:
        self.counting = counting
        self.last_remote_text: Optional[str] = None
        self._suppress = 0

    @property
    def pending_suppressions(self) -> int:
        return self._suppress

    def before_remote_write(self, current_text: str, incoming_text: str) -> bool:
        """Arm a suppression for a remote write; returns whether one was armed."""

        if self.counting and current_text != incoming_text:
            self._suppress += 1
            return True
        return False

    def cancel_remote_write(self) -> None:
        """Disarm the suppression of a remote write that raised."""

        if self._suppress:
            self._suppress -= 1

    def after_remote_write(self, text: str) -> None:
        self.last_remote_text = text

    def is_echo(self, current_text: str) -> bool:
        if self.counting:
            if self._suppress:
                self._suppress -= 1
                return True
            return False
        return current_text == self.last_remote_text


__all__ = ["EchoGuard"]
