"""Ordered, fire-and-forget transcript persistence."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from pyconsole.errors import PersistenceError
from pyconsole.session.models import TranscriptEntry
from pyconsole.storage.interfaces import HistoryStore

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Append entries to a HistoryStore without making the caller wait.

    A single worker task drains the queue, so writes land in the order they
    were recorded. A failed write is reported and the worker moves on.
    """

    def __init__(self, store: HistoryStore, notify: Callable[[str], None]) -> None:
        self.store = store
        self._notify = notify
        self._queue: asyncio.Queue[TranscriptEntry] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    def record(self, entry: TranscriptEntry) -> None:
        """Queue an entry for a single-entry append."""
        self._queue.put_nowait(entry)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain_queue())

    async def _drain_queue(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                key = await self.store.append_one(entry)
                logger.debug("Persisted transcript entry %s", key)
            except PersistenceError as e:
                logger.warning("History write failed: %s", e)
                self._notify(f"Failed to save history: {e}")
            except Exception as e:
                logger.exception("Unexpected history write failure")
                self._notify(f"Failed to save history: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every recorded entry has been written."""
        await self._queue.join()

    async def close(self) -> None:
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
