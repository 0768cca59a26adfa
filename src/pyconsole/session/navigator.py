"""Ordered transcript with directional history recall."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pyconsole.session.models import TranscriptEntry

logger = logging.getLogger(__name__)


class HistoryNavigator:
    """Hold the transcript and a recall cursor over genuine user submissions.

    The cursor is -1 while the user is typing live, 0 for the most recent
    submission, and grows moving into the past. Version-probe and synthetic
    terminal entries stay in the transcript but are skipped while walking.
    """

    def __init__(self, entries: Iterable[TranscriptEntry] = ()) -> None:
        self._entries: list[TranscriptEntry] = list(entries)
        self._cursor = -1
        self._index = -1
        self._draft = ""

    @property
    def entries(self) -> list[TranscriptEntry]:
        return self._entries

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def navigable_count(self) -> int:
        return sum(1 for entry in self._entries if entry.is_navigable)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: TranscriptEntry) -> None:
        self._entries.append(entry)

    def recall_older(self, current: str) -> str:
        """Step one submission into the past. Returns the text for the input buffer."""
        if self._cursor + 1 >= self.navigable_count:
            return current

        if self._cursor == -1:
            self._draft = current
            index = len(self._entries) - 1
        else:
            index = self._index - 1
        while not self._entries[index].is_navigable:
            index -= 1

        self._cursor += 1
        self._index = index
        return self._entries[index].input

    def recall_newer(self, current: str) -> str:
        """Step one submission towards the present, back to the live draft at the end."""
        if self._cursor == -1:
            return current
        if self._cursor == 0:
            self._cursor = -1
            self._index = -1
            return self._draft

        index = self._index + 1
        while not self._entries[index].is_navigable:
            index += 1

        self._cursor -= 1
        self._index = index
        return self._entries[index].input

    def reset(self) -> str:
        """Stop navigating and clear the input buffer."""
        self._cursor = -1
        self._index = -1
        self._draft = ""
        return ""
