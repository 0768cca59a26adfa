"""Execution coordination: one submission in flight, terminal output deferred."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pyconsole.errors import BackendUnavailable
from pyconsole.services.backend import ExecutionBackend
from pyconsole.session.classifier import classify
from pyconsole.session.models import (
    ERROR_TAG,
    TERMINAL_TAG,
    ExecutionState,
    OutputClass,
    TranscriptEntry,
)
from pyconsole.session.navigator import HistoryNavigator
from pyconsole.session.recorder import HistoryRecorder

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Python is still loading. Please wait..."
BUSY_MESSAGE = "Execution in progress. Please wait..."


def stringify_error(error: BaseException) -> str:
    """Turn a backend failure into transcript text that classifies as an error."""
    text = str(error)
    if text.startswith(ERROR_TAG):
        return text
    return f"{ERROR_TAG} {type(error).__name__}: {text}"


class ExecutionCoordinator:
    """Serialize submissions to the backend and merge their results into the transcript.

    State is IDLE or BUSY. Terminal output arriving while BUSY is held in a
    single last-write-wins slot and appended as its own entry only after the
    transition back to IDLE, so it never lands between a submission and its
    result.
    """

    def __init__(
        self,
        backend: ExecutionBackend,
        navigator: HistoryNavigator,
        recorder: HistoryRecorder,
        notify: Callable[[str], None],
        html_sink: Callable[[str], None],
    ) -> None:
        self.backend = backend
        self.navigator = navigator
        self.recorder = recorder
        self._notify = notify
        self._html_sink = html_sink
        self._state = ExecutionState.IDLE
        self._pending_output: str | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is ExecutionState.BUSY

    @property
    def pending_output(self) -> str | None:
        return self._pending_output

    # --- State transitions ---

    def begin(self) -> None:
        """Enter BUSY. Only one execution may be in flight."""
        if self.busy:
            raise RuntimeError("An execution is already in flight")
        self._state = ExecutionState.BUSY
        self._idle.clear()

    def finish(self) -> None:
        """Return to IDLE and flush deferred terminal output."""
        self._state = ExecutionState.IDLE
        self._idle.set()
        self._flush_pending()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    # --- Out-of-band output ---

    def on_terminal_output(self, text: str) -> None:
        """Receive stdout/stderr text from the backend."""
        self._pending_output = f"{TERMINAL_TAG}\n{text}"
        if not self.busy:
            self._flush_pending()

    def _flush_pending(self) -> None:
        if self._pending_output is None:
            return
        output, self._pending_output = self._pending_output, None
        self._append(TranscriptEntry(input="", output=output, classification=classify(output)))

    # --- Submission ---

    async def submit(self, code: str) -> TranscriptEntry | None:
        """Run code on the backend. Returns the new transcript entry, or None if dropped."""
        if code.strip() == "":
            return None
        if not self.backend.ready:
            logger.info("Submission dropped: %s", BackendUnavailable.__name__)
            self._notify(NOT_READY_MESSAGE)
            return None
        if self.busy:
            logger.info("Submission rejected while busy")
            self._notify(BUSY_MESSAGE)
            return None

        self.begin()
        try:
            entry = await self._execute(code)
            self._append(entry)
        finally:
            self.finish()
        return entry

    async def _execute(self, code: str) -> TranscriptEntry:
        try:
            result = await self.backend.evaluate(code)
        except asyncio.CancelledError:
            raise
        except BaseException as e:
            logger.debug("Execution failed: %s", type(e).__name__)
            output = stringify_error(e)
            return TranscriptEntry(input=code, output=output, classification=classify(output))

        classification = classify(result)
        if classification is OutputClass.HTML and result is not None:
            self._send_html(result)
            return TranscriptEntry(input=code, output=None, classification=classification)
        return TranscriptEntry(input=code, output=result, classification=classification)

    def _send_html(self, payload: str) -> None:
        try:
            self._html_sink(payload)
        except Exception as e:
            logger.exception("HTML sink failed")
            self._notify(f"Failed to display HTML output: {e}")

    def _append(self, entry: TranscriptEntry) -> None:
        self.navigator.append(entry)
        self.recorder.record(entry)
