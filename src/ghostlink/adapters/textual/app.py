"""Textual editor that serves GhostText sessions, one tab per browser field."""

from __future__ import annotations

import argparse
import asyncio
from typing import Dict, Optional, Sequence

try:  # pragma: no cover - imported only when the app is run
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Static, TabbedContent, TabPane, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use ghostlink.adapters.textual.app"
    ) from exc

from ghostlink.config import BridgeConfig
from ghostlink.host.memory import MemoryHost
from ghostlink.runtime import telemetry
from ghostlink.server import GhostTextBridge

from .controller import EditorWidget, TextualHost, TextualHostHooks


class GhostTextApp(App[None]):
    """Tabbed editor; each connected browser text field gets its own tab."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#documents {
		height: 1fr;
	}

	TextArea {
		height: 1fr;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+g", "enable_ghosttext", "Enable GhostText"),
        ("ctrl+w", "close_document", "Close tab"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, config: Optional[BridgeConfig] = None) -> None:
        super().__init__()
        self.config = config or BridgeConfig.from_env()
        self.host: TextualHost | None = None
        self.bridge: GhostTextBridge | None = None
        self._panes: Dict[str, TextArea] = {}
        self._pane_counter = 0
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield TabbedContent(id="documents")
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    async def on_mount(self) -> None:
        hooks = TextualHostHooks(
            mount_editor=self._mount_editor,
            unmount_editor=self._unmount_editor,
            notify=self._notify,
            mark_detached=self._mark_detached,
        )
        self.host = TextualHost(hooks, scratch_suffix=self.config.scratch_suffix)
        self.bridge = GhostTextBridge(self.host, self.config)
        try:
            await self.bridge.activate()
        except OSError as exc:
            self.bridge = None
            self._update_status(f"GhostText unavailable: {exc}")
            self.notify(f"GhostText could not start: {exc}", severity="error")
            return
        self._update_status(
            f"GhostText @ {self.config.host}:{self.bridge.status_port}"
            f" (ws {self.bridge.websocket_port})"
        )

    async def on_unmount(self) -> None:
        if self.bridge:
            await self.bridge.deactivate()
            self.bridge = None

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if self.host:
            self.host.handle_widget_changed(event.text_area)

    def action_enable_ghosttext(self) -> None:
        if self.bridge:
            self.bridge.enable_command()

    async def action_close_document(self) -> None:
        tabs = self.query_one("#documents", TabbedContent)
        editor = self._panes.get(tabs.active)
        if editor is None or self.host is None:
            return
        if not await self.host.close_widget(editor):
            await self._unmount_editor(editor)

    async def _mount_editor(self, title: str, text: str) -> EditorWidget:
        self._pane_counter += 1
        pane_id = f"doc-{self._pane_counter}"
        editor = TextArea(text, id=f"{pane_id}-editor")
        tabs = self.query_one("#documents", TabbedContent)
        await tabs.add_pane(TabPane(title, editor, id=pane_id))
        tabs.active = pane_id
        self._panes[pane_id] = editor
        editor.focus()
        return editor

    async def _unmount_editor(self, widget: EditorWidget) -> None:
        for pane_id, editor in list(self._panes.items()):
            if editor is widget:
                del self._panes[pane_id]
                await self.query_one("#documents", TabbedContent).remove_pane(pane_id)
                return

    def _mark_detached(self, widget: EditorWidget) -> None:
        if isinstance(widget, TextArea):
            widget.border_subtitle = "disconnected"

    def _notify(self, message: str, severity: str) -> None:
        self.notify(message, severity=severity)  # type: ignore[arg-type]

    def _update_status(self, text: str) -> None:
        if self._status_widget:
            self._status_widget.update(text)


async def run_headless(config: BridgeConfig, *, stop: Optional[asyncio.Event] = None) -> None:
    """Serve sessions into in-memory buffers until ``stop`` is set."""

    host = MemoryHost(scratch_suffix=config.scratch_suffix)
    async with GhostTextBridge(host, config) as bridge:
        telemetry.record_event(
            "headless.ready",
            data={"status_port": bridge.status_port, "websocket_port": bridge.websocket_port},
        )
        await (stop or asyncio.Event()).wait()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit GhostText browser fields locally.")
    parser.add_argument("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument(
        "--status-port",
        type=int,
        default=None,
        help="HTTP status port clients check first (default: 4001)",
    )
    parser.add_argument(
        "--websocket-port",
        type=int,
        default=None,
        help="WebSocket port (0 for ephemeral, the default)",
    )
    parser.add_argument(
        "--settle-delay-ms",
        type=int,
        default=None,
        help="Delay before forwarding a local edit (default: 50)",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without the editor UI, keeping documents in memory",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BridgeConfig:
    return BridgeConfig.from_env().with_overrides(
        host=args.host,
        status_port=args.status_port,
        websocket_port=args.websocket_port,
        settle_delay_ms=args.settle_delay_ms,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    config = build_config(args)
    if args.headless:
        telemetry.configure(preset="headless")
        try:
            asyncio.run(run_headless(config))
        except KeyboardInterrupt:
            pass
        return
    telemetry.configure(preset="tui")
    GhostTextApp(config).run()


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
