"""In-memory history store for ephemeral sessions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from pyconsole.session.models import TranscriptEntry


class MemoryHistoryStore:
    """HistoryStore kept in a dict keyed by an increasing counter."""

    def __init__(self, entries: Sequence[TranscriptEntry] = ()) -> None:
        self._rows: dict[int, TranscriptEntry] = {}
        self._next_key = 1
        for entry in entries:
            self._put(entry)

    def _put(self, entry: TranscriptEntry) -> int:
        key = self._next_key
        self._rows[key] = replace(entry)
        self._next_key += 1
        return key

    async def load_all(self) -> list[TranscriptEntry]:
        return [replace(self._rows[key]) for key in sorted(self._rows)]

    async def append_one(self, entry: TranscriptEntry) -> int:
        return self._put(entry)

    async def save_all(self, entries: Sequence[TranscriptEntry]) -> None:
        self._rows.clear()
        for entry in entries:
            self._put(entry)

    async def close(self) -> None:
        pass
