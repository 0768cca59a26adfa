"""Protocol for transcript persistence."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from pyconsole.session.models import TranscriptEntry


class HistoryStore(Protocol):
    """Key-ordered durable store of transcript entries.

    Implementations raise PersistenceError on failure and must return an
    empty sequence when nothing has been stored yet.
    """

    async def load_all(self) -> list[TranscriptEntry]:
        """Return every stored entry in insertion order."""
        ...

    async def append_one(self, entry: TranscriptEntry) -> int:
        """Append a single entry and return its key."""
        ...

    async def save_all(self, entries: Sequence[TranscriptEntry]) -> None:
        """Replace the stored sequence with entries."""
        ...

    async def close(self) -> None:
        ...
