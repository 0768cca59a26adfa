"""REPL session controller: wires input handling, execution, completion and history."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pyconsole.errors import PersistenceError
from pyconsole.services.backend import ExecutionBackend
from pyconsole.session.analyzer import LineAnalyzer, to_multiline
from pyconsole.session.classifier import classify
from pyconsole.session.completion import CompletionEngine
from pyconsole.session.coordinator import ExecutionCoordinator
from pyconsole.session.models import (
    VERSION_PROBE_CODE,
    VERSION_PROBE_INPUT,
    KeyAction,
    KeyEvent,
    OutputClass,
    TranscriptEntry,
)
from pyconsole.session.navigator import HistoryNavigator
from pyconsole.session.recorder import HistoryRecorder
from pyconsole.storage.interfaces import HistoryStore

logger = logging.getLogger(__name__)

PROMPT_LOADING = "loading..."
PROMPT_BUSY = "~~~"
PROMPT_READY = ">>>"


def _ignore_html(payload: str) -> None:
    logger.info("HTML output dropped (%d chars): no sink configured", len(payload))


class ReplSession:
    """One interactive console session.

    The session owns the live input buffer. Front-ends translate their key
    presses into KeyEvent objects, call handle_key(), and then show
    ``input_buffer`` and ``render_lines()``.
    """

    def __init__(
        self,
        backend: ExecutionBackend,
        store: HistoryStore,
        notify: Callable[[str], None],
        html_sink: Callable[[str], None] | None = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self._notify_callback = notify

        self.input_buffer = ""
        self.suggestions: list[str] = []
        self.baseline = 0

        self.analyzer = LineAnalyzer()
        self.navigator = HistoryNavigator()
        self.recorder = HistoryRecorder(store, self.notify)
        self.coordinator = ExecutionCoordinator(
            backend,
            self.navigator,
            self.recorder,
            self.notify,
            html_sink or _ignore_html,
        )
        self.completion = CompletionEngine(backend, self.notify)

    def notify(self, message: str) -> None:
        """Send an operator-visible advisory."""
        logger.info("Advisory: %s", message)
        self._notify_callback(message)

    # --- Lifecycle ---

    async def start(self) -> None:
        """Load stored history, boot the backend and record the version probe."""
        await self._load_history()

        self.coordinator.begin()
        try:
            await self._start_backend()
        finally:
            self.coordinator.finish()

    async def _load_history(self) -> None:
        try:
            stored = await self.store.load_all()
        except PersistenceError as e:
            logger.warning("History load failed: %s", e)
            self.notify(f"Failed to load history: {e}")
            stored = []

        entries = [entry for entry in stored if not entry.is_version_probe]
        if len(entries) != len(stored):
            try:
                await self.store.save_all(entries)
            except PersistenceError as e:
                logger.warning("History reconciliation failed: %s", e)
                self.notify(f"Failed to save history: {e}")

        self.navigator = HistoryNavigator(entries)
        self.coordinator.navigator = self.navigator
        self.baseline = len(entries)
        logger.info("Loaded %d history entries", self.baseline)

    async def _start_backend(self) -> None:
        try:
            await self.backend.start(
                on_stdout=self.coordinator.on_terminal_output,
                on_stderr=self.coordinator.on_terminal_output,
            )
            self.notify("Python backend loaded successfully")
            version = await self.backend.evaluate(VERSION_PROBE_CODE)
        except Exception as e:
            logger.exception("Backend start-up failed")
            self.notify(f"Error loading Python backend: {e}")
            return

        if version is not None:
            entry = TranscriptEntry(
                input=VERSION_PROBE_INPUT,
                output=version,
                classification=classify(version),
            )
            self.navigator.append(entry)
            self.recorder.record(entry)

    async def close(self) -> None:
        await self.recorder.close()
        await self.backend.close()
        await self.store.close()

    # --- State ---

    @property
    def ready(self) -> bool:
        return self.backend.ready

    @property
    def busy(self) -> bool:
        return self.coordinator.busy

    @property
    def prompt_label(self) -> str:
        if not self.ready:
            return PROMPT_LOADING
        return PROMPT_BUSY if self.busy else PROMPT_READY

    @property
    def entries(self) -> list[TranscriptEntry]:
        return self.navigator.entries

    def visible_entries(self) -> list[TranscriptEntry]:
        """Entries produced during this session."""
        return self.navigator.entries[self.baseline :]

    def render_lines(self) -> list[tuple[str, OutputClass]]:
        """Transcript lines for display, each with the class that picks its color."""
        lines: list[tuple[str, OutputClass]] = []
        for index, entry in enumerate(self.visible_entries()):
            if index == 0 and entry.is_version_probe:
                lines.append((f"{entry.input} {entry.output}", OutputClass.PLAIN))
                continue
            if entry.is_version_probe:
                continue
            if entry.input != "":
                lines.append((f"{PROMPT_READY} {to_multiline(entry.input)}", OutputClass.PLAIN))
            if entry.output is not None:
                lines.append((entry.output, classify(entry.output)))
        return lines

    # --- Input ---

    async def handle_key(self, event: KeyEvent) -> KeyAction | None:
        """Apply a key press to the session. Returns the action taken, if any."""
        action = self.analyzer.decide(self.input_buffer, event)
        if action is KeyAction.INSERT_NEWLINE:
            self.input_buffer += "\n"
        elif action is KeyAction.SUBMIT:
            await self.submit(self.input_buffer)
        elif action is KeyAction.ARM_TAB_COMPLETION:
            await self.complete()
        elif action is KeyAction.RECALL_OLDER:
            self.input_buffer = self.navigator.recall_older(self.input_buffer)
        elif action is KeyAction.RECALL_NEWER:
            self.input_buffer = self.navigator.recall_newer(self.input_buffer)
        return action

    async def submit(self, code: str) -> TranscriptEntry | None:
        entry = await self.coordinator.submit(code)
        if entry is not None:
            self.input_buffer = self.navigator.reset()
        return entry

    async def complete(self) -> list[str]:
        result = await self.completion.complete(self.input_buffer)
        self.input_buffer = result.text
        self.suggestions = result.candidates
        return result.candidates
