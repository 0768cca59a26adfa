"""SQLite database management for the console transcript."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import aiosqlite

from pyconsole.errors import PersistenceError
from pyconsole.session.classifier import classify
from pyconsole.session.models import OutputClass, TranscriptEntry

logger = logging.getLogger(__name__)


def _to_row(entry: TranscriptEntry) -> tuple[str, str | None, str]:
    return (entry.input, entry.output, entry.classification.value)


def _from_row(row: aiosqlite.Row) -> TranscriptEntry:
    try:
        classification = OutputClass(row["classification"])
    except ValueError:
        logger.warning("Unknown classification %r in history, reclassifying", row["classification"])
        classification = classify(row["output"])
    return TranscriptEntry(input=row["input"], output=row["output"], classification=classification)


class SQLiteHistoryStore:
    """HistoryStore backed by an aiosqlite connection."""

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the database and create tables."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(str(self.db_path))
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode = WAL")

            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS transcript (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    input TEXT NOT NULL,
                    output TEXT,
                    classification TEXT NOT NULL DEFAULT 'plain',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await self._db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"Cannot open history database {self.db_path}: {e}") from e
        logger.info("History database opened: %s", self.db_path)

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PersistenceError("History database not opened. Call open() first.")
        return self._db

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("History database closed")

    async def load_all(self) -> list[TranscriptEntry]:
        db = self._conn()
        try:
            cursor = await db.execute("SELECT input, output, classification FROM transcript ORDER BY id")
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to load history: {e}") from e
        return [_from_row(row) for row in rows]

    async def append_one(self, entry: TranscriptEntry) -> int:
        db = self._conn()
        try:
            cursor = await db.execute(
                "INSERT INTO transcript (input, output, classification) VALUES (?, ?, ?)",
                _to_row(entry),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to save history entry: {e}") from e
        return cursor.lastrowid or 0

    async def save_all(self, entries: Sequence[TranscriptEntry]) -> None:
        db = self._conn()
        try:
            await db.execute("DELETE FROM transcript")
            await db.executemany(
                "INSERT INTO transcript (input, output, classification) VALUES (?, ?, ?)",
                [_to_row(entry) for entry in entries],
            )
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise PersistenceError(f"Failed to rewrite history: {e}") from e
        logger.info("History rewritten with %d entries", len(entries))

    async def get_recent(self, limit: int = 10) -> list[dict]:
        """Get the most recent stored rows, newest first."""
        db = self._conn()
        try:
            cursor = await db.execute(
                "SELECT id, input, output, classification, created_at FROM transcript ORDER BY id DESC LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read history: {e}") from e
        return [dict(row) for row in rows]
