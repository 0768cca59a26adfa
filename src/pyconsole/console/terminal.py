"""Terminal front-end: prompt_toolkit input, rich transcript output."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.application import run_in_terminal
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from rich.console import Console
from rich.text import Text

from pyconsole.services.backend import ExecutionBackend
from pyconsole.session.classifier import OUTPUT_COLORS
from pyconsole.session.controller import ReplSession
from pyconsole.session.models import CONTINUATION_PREFIX, KeyAction, KeyEvent, OutputClass
from pyconsole.storage.interfaces import HistoryStore

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 0.2
ADVISORY_STYLE = "dim"
MAX_LISTED_CANDIDATES = 60


def style_for(classification: OutputClass) -> str | None:
    color = OUTPUT_COLORS[classification]
    return None if color == "inherit" else color


class HtmlFileSink:
    """Write HTML results to standalone files instead of rendering them in the terminal."""

    def __init__(self, html_dir: str, notify: Callable[[str], None] | None = None) -> None:
        self.html_dir = Path(html_dir).expanduser().resolve()
        self._notify = notify
        self._count = 0

    def __call__(self, payload: str) -> None:
        self.html_dir.mkdir(parents=True, exist_ok=True)
        self._count += 1
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = self.html_dir / f"output-{stamp}-{self._count}.html"
        path.write_text(payload, encoding="utf-8")
        logger.info("HTML output written: %s", path)
        if self._notify is not None:
            self._notify(f"HTML output written to {path}")


class TerminalConsole:
    """Drive a ReplSession from an interactive terminal.

    Key presses are forwarded to the session; the input line always mirrors
    ``session.input_buffer``. New transcript lines and advisories are printed
    above the prompt as they appear.
    """

    def __init__(
        self,
        backend: ExecutionBackend,
        store: HistoryStore,
        html_dir: str,
        console: Console | None = None,
    ) -> None:
        self.console = console or Console(highlight=False)
        self._advisories: list[str] = []
        self.session = ReplSession(
            backend=backend,
            store=store,
            notify=self.advise,
            html_sink=HtmlFileSink(html_dir, notify=self.advise),
        )
        self._printed = 0
        self._prompt: PromptSession[str] | None = None

    def advise(self, message: str) -> None:
        """Advisory channel: queued and printed above the prompt."""
        self._advisories.append(message)

    # ---------- output ----------

    def _take_output(self) -> tuple[list[str], list[tuple[str, OutputClass]]]:
        advisories, self._advisories = self._advisories, []
        lines = self.session.render_lines()
        new_lines = lines[self._printed :]
        self._printed = len(lines)
        return advisories, new_lines

    def _print(self, advisories: list[str], lines: list[tuple[str, OutputClass]]) -> None:
        for message in advisories:
            self.console.print(Text(message, style=ADVISORY_STYLE))
        for text, classification in lines:
            self.console.print(Text(text, style=style_for(classification) or ""))

    async def flush_output(self) -> None:
        advisories, lines = self._take_output()
        if not advisories and not lines:
            return
        if self._prompt is not None and self._prompt.app.is_running:
            await run_in_terminal(lambda: self._print(advisories, lines))
        else:
            self._print(advisories, lines)

    async def _watch_output(self) -> None:
        while True:
            await asyncio.sleep(REFRESH_INTERVAL)
            await self.flush_output()

    # ---------- keybindings ----------

    def _event_for(self, key: str, event: KeyPressEvent, shift: bool = False) -> KeyEvent:
        document = event.current_buffer.document
        on_last_line = document.cursor_position_row == document.line_count - 1
        return KeyEvent(key=key, shift=shift, caret_on_last_line=on_last_line)

    async def _dispatch(self, event: KeyPressEvent, key_event: KeyEvent) -> None:
        buf = event.current_buffer
        self.session.input_buffer = buf.text
        try:
            action = await self.session.handle_key(key_event)
        except Exception as e:
            logger.exception("Key handling failed")
            self.advise(f"Internal error: {e}")
            return

        if action is None:
            self._default_action(event, key_event)
        else:
            unchanged = buf.text == self.session.input_buffer
            buf.text = self.session.input_buffer
            buf.cursor_position = len(buf.text)
            if action is KeyAction.ARM_TAB_COMPLETION and unchanged:
                self._show_candidates(self.session.suggestions)
        event.app.invalidate()
        await self.flush_output()

    def _show_candidates(self, names: list[str]) -> None:
        public = [name for name in names if not name.startswith("_")]
        if public:
            self.advise("  ".join(public[:MAX_LISTED_CANDIDATES]))

    def _default_action(self, event: KeyPressEvent, key_event: KeyEvent) -> None:
        buf = event.current_buffer
        if key_event.key == "Tab":
            buf.insert_text("    ")
        elif key_event.key == "ArrowUp":
            buf.cursor_up()
        elif key_event.key == "ArrowDown":
            buf.cursor_down()

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        def forward(key: str, shift: bool = False):
            def handler(event: KeyPressEvent) -> None:
                key_event = self._event_for(key, event, shift=shift)
                event.app.create_background_task(self._dispatch(event, key_event))

            return handler

        kb.add("enter", eager=True)(forward("Enter"))
        # Terminals cannot report Shift+Enter; Alt+Enter (escape, enter) stands in for it
        kb.add("escape", "enter", eager=True)(forward("Enter", shift=True))
        kb.add("tab", eager=True)(forward("Tab"))
        kb.add("up", eager=True)(forward("ArrowUp"))
        kb.add("down", eager=True)(forward("ArrowDown"))
        kb.add("s-up", eager=True)(forward("ArrowUp", shift=True))
        kb.add("s-down", eager=True)(forward("ArrowDown", shift=True))

        @kb.add("c-l")
        def _(event: KeyPressEvent) -> None:
            event.app.renderer.clear()

        return kb

    # ---------- session ----------

    def _prompt_message(self) -> str:
        return f"{self.session.prompt_label} "

    def _ensure_prompt(self) -> PromptSession[str]:
        if self._prompt is None:
            self._prompt = PromptSession(
                message=self._prompt_message,
                multiline=True,
                prompt_continuation=CONTINUATION_PREFIX,
                key_bindings=self.build_key_bindings(),
                refresh_interval=REFRESH_INTERVAL,
            )
        return self._prompt

    async def run(self) -> None:
        prompt = self._ensure_prompt()
        start_task = asyncio.create_task(self.session.start())
        watcher = asyncio.create_task(self._watch_output())
        try:
            while True:
                try:
                    await prompt.prompt_async()
                except KeyboardInterrupt:
                    self.session.input_buffer = self.session.navigator.reset()
                    continue
                except EOFError:
                    break
        finally:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
            await start_task
            await self.session.coordinator.wait_idle()
            await self.flush_output()
            await self.session.close()
