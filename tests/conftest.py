"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import pytest

from pyconsole.config import AppConfig, BackendConfig, ConsoleConfig, LoggingConfig, StorageConfig
from pyconsole.errors import PersistenceError
from pyconsole.session.models import VERSION_PROBE_CODE
from pyconsole.storage.memory import MemoryHistoryStore


class FakeBackend:
    """Scripted ExecutionBackend.

    ``results`` maps source code to a return value, or to an exception to
    raise. ``emit`` maps source code to terminal text written while it runs.
    """

    def __init__(self, results=None, emit=None, ready=False, fail_start=False):
        self.results = {VERSION_PROBE_CODE: "3.12.0 (main)"}
        self.results.update(results or {})
        self.emit = dict(emit or {})
        self.calls: list[str] = []
        self.fail_start = fail_start
        self.gate: asyncio.Event | None = None
        self.on_stdout = None
        self.on_stderr = None
        self.closed = False
        self._ready = ready

    @property
    def ready(self) -> bool:
        return self._ready

    async def start(self, on_stdout, on_stderr):
        if self.fail_start:
            raise RuntimeError("runtime download failed")
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr
        self._ready = True

    async def evaluate(self, code):
        self.calls.append(code)
        if self.gate is not None:
            await self.gate.wait()
        if code in self.emit:
            self.on_stdout(self.emit[code])
        result = self.results.get(code)
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self):
        self.closed = True
        self._ready = False


class FailingStore(MemoryHistoryStore):
    """MemoryHistoryStore whose operations can be made to fail."""

    def __init__(self, entries=(), fail_load=False, fail_append=False, fail_save=False):
        super().__init__(entries)
        self.fail_load = fail_load
        self.fail_append = fail_append
        self.fail_save = fail_save
        self.appended = []
        self.saved = []

    async def load_all(self):
        if self.fail_load:
            raise PersistenceError("disk unreadable")
        return await super().load_all()

    async def append_one(self, entry):
        if self.fail_append:
            raise PersistenceError("disk full")
        self.appended.append(entry)
        return await super().append_one(entry)

    async def save_all(self, entries):
        if self.fail_save:
            raise PersistenceError("read-only")
        self.saved.append(list(entries))
        await super().save_all(entries)


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        backend=BackendConfig(preload_modules=["json"]),
        console=ConsoleConfig(html_dir=str(tmp_path / "html")),
        storage=StorageConfig(db_path=str(tmp_path / "history.db")),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "console.log")),
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def advisories():
    return []


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_store():
    return FailingStore
