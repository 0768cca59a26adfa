"""Tests for history stores."""

from __future__ import annotations

import aiosqlite
import pytest

from pyconsole.errors import PersistenceError
from pyconsole.session.controller import ReplSession
from pyconsole.session.models import VERSION_PROBE_INPUT, OutputClass, TranscriptEntry
from pyconsole.storage.database import SQLiteHistoryStore
from pyconsole.storage.memory import MemoryHistoryStore

ENTRIES = [
    TranscriptEntry(input=VERSION_PROBE_INPUT, output="3.12.0", classification=OutputClass.PLAIN),
    TranscriptEntry(input="1+1", output="2", classification=OutputClass.PLAIN),
    TranscriptEntry(input="fig", output=None, classification=OutputClass.HTML),
    TranscriptEntry(input="", output="[Terminal]\nx", classification=OutputClass.TERMINAL),
    TranscriptEntry(input="y", output="PythonError: NameError", classification=OutputClass.ERROR),
]


class TestSQLiteHistoryStore:
    @pytest.mark.asyncio
    async def test_empty_on_first_run(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        await store.open()

        assert await store.load_all() == []

        await store.close()

    @pytest.mark.asyncio
    async def test_append_and_load(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        await store.open()

        keys = [await store.append_one(entry) for entry in ENTRIES]

        assert keys == sorted(keys)
        assert await store.load_all() == ENTRIES

        await store.close()

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "nested" / "history.db")
        store = SQLiteHistoryStore(db_path)
        await store.open()
        await store.append_one(ENTRIES[1])
        await store.close()

        reopened = SQLiteHistoryStore(db_path)
        await reopened.open()
        assert await reopened.load_all() == [ENTRIES[1]]
        await reopened.close()

    @pytest.mark.asyncio
    async def test_save_all_round_trip_is_stable(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        await store.open()
        for entry in ENTRIES:
            await store.append_one(entry)

        loaded = await store.load_all()
        await store.save_all(loaded)
        assert await store.load_all() == loaded

        await store.close()

    @pytest.mark.asyncio
    async def test_save_all_replaces(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        await store.open()
        for entry in ENTRIES:
            await store.append_one(entry)

        await store.save_all(ENTRIES[1:2])
        assert await store.load_all() == ENTRIES[1:2]

        await store.close()

    @pytest.mark.asyncio
    async def test_get_recent_newest_first(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        await store.open()
        for entry in ENTRIES:
            await store.append_one(entry)

        rows = await store.get_recent(limit=2)
        assert [row["input"] for row in rows] == ["y", ""]
        assert rows[0]["classification"] == "error"

        await store.close()

    @pytest.mark.asyncio
    async def test_not_opened(self, tmp_path):
        store = SQLiteHistoryStore(str(tmp_path / "history.db"))
        with pytest.raises(PersistenceError):
            await store.load_all()

    @pytest.mark.asyncio
    async def test_unknown_classification_reclassified(self, tmp_path):
        db_path = str(tmp_path / "history.db")
        store = SQLiteHistoryStore(db_path)
        await store.open()
        async with aiosqlite.connect(db_path) as db:
            await db.execute(
                "INSERT INTO transcript (input, output, classification) VALUES (?, ?, ?)",
                ("y", "PythonError: NameError", "bogus"),
            )
            await db.commit()

        assert await store.load_all() == [
            TranscriptEntry(input="y", output="PythonError: NameError", classification=OutputClass.ERROR)
        ]
        await store.close()

    @pytest.mark.asyncio
    async def test_session_starts_with_unknown_classification(self, tmp_path, make_backend, advisories):
        db_path = str(tmp_path / "history.db")
        store = SQLiteHistoryStore(db_path)
        await store.open()
        async with aiosqlite.connect(db_path) as db:
            await db.execute(
                "INSERT INTO transcript (input, output, classification) VALUES (?, ?, ?)",
                ("1+1", "2", "bogus"),
            )
            await db.commit()

        session = ReplSession(backend=make_backend(), store=store, notify=advisories.append)
        await session.start()
        assert session.ready
        assert session.entries[0] == TranscriptEntry(input="1+1", output="2", classification=OutputClass.PLAIN)
        await session.close()


class TestMemoryHistoryStore:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        store = MemoryHistoryStore()
        for entry in ENTRIES:
            await store.append_one(entry)

        loaded = await store.load_all()
        await store.save_all(loaded)
        assert await store.load_all() == ENTRIES

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        store = MemoryHistoryStore(ENTRIES[1:2])
        loaded = await store.load_all()
        loaded[0].output = "changed"
        assert (await store.load_all())[0].output == "2"
