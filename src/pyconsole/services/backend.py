"""Execution backends: the protocol the session drives and an in-process Python runner."""

from __future__ import annotations

import ast
import asyncio
import builtins
import importlib
import inspect
import io
import logging
import sys
import traceback
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, Protocol, TextIO

from pyconsole.errors import BackendUnavailable, ExecutionError
from pyconsole.session.models import ERROR_TAG

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]

CONSOLE_FILENAME = "<console>"


class ExecutionBackend(Protocol):
    """Asynchronous code evaluator with an out-of-band terminal channel."""

    @property
    def ready(self) -> bool:
        """True once start() has completed."""
        ...

    async def start(self, on_stdout: OutputCallback, on_stderr: OutputCallback) -> None:
        """Boot the runtime and register the terminal output callbacks."""
        ...

    async def evaluate(self, code: str) -> str | None:
        """Run code and return the stringified value of its trailing expression.

        Raises on failure; str() of the raised error is shown to the user.
        """
        ...

    async def close(self) -> None:
        ...


class _LineStream(io.TextIOBase):
    """Text stream that hands each completed line to a callback."""

    def __init__(self, callback: OutputCallback) -> None:
        super().__init__()
        self._callback = callback
        self._pending = ""

    def writable(self) -> bool:
        return True

    def write(self, data: str) -> int:
        if not isinstance(data, str):
            raise TypeError(f"write() argument must be str, not {type(data).__name__}")
        self._pending += data
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self._callback(line)
        return len(data)

    def flush_line(self) -> None:
        """Emit a trailing partial line, if any."""
        if self._pending:
            pending, self._pending = self._pending, ""
            self._callback(pending)


_stdout_target: ContextVar[_LineStream | None] = ContextVar("pyconsole_stdout", default=None)
_stderr_target: ContextVar[_LineStream | None] = ContextVar("pyconsole_stderr", default=None)


class _RoutedStream(io.TextIOBase):
    """Process-wide stand-in for sys.stdout/sys.stderr.

    Writes from a context that is evaluating console code (and tasks it
    spawns) go to that evaluation's _LineStream; everything else reaches the
    original stream untouched.
    """

    def __init__(self, original: TextIO, target: ContextVar[_LineStream | None]) -> None:
        super().__init__()
        self.original = original
        self._target = target

    def writable(self) -> bool:
        return True

    def write(self, data: str) -> int:
        stream = self._target.get()
        if stream is None:
            return self.original.write(data)
        return stream.write(data)

    def flush(self) -> None:
        if self._target.get() is None:
            self.original.flush()

    def isatty(self) -> bool:
        return self.original.isatty()

    def fileno(self) -> int:
        return self.original.fileno()

    @property
    def encoding(self) -> str:
        return getattr(self.original, "encoding", "utf-8")


def _install_routing() -> None:
    if not isinstance(sys.stdout, _RoutedStream):
        sys.stdout = _RoutedStream(sys.stdout, _stdout_target)
    if not isinstance(sys.stderr, _RoutedStream):
        sys.stderr = _RoutedStream(sys.stderr, _stderr_target)


def _remove_routing() -> None:
    if isinstance(sys.stdout, _RoutedStream):
        sys.stdout = sys.stdout.original
    if isinstance(sys.stderr, _RoutedStream):
        sys.stderr = sys.stderr.original


def _cancel_requested() -> bool:
    """True when the evaluating task itself is being cancelled."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


def _format_error(exc: BaseException) -> str:
    """Render a traceback limited to frames of the submitted code."""
    tb = exc.__traceback__
    while tb is not None and tb.tb_frame.f_code.co_filename != CONSOLE_FILENAME:
        tb = tb.tb_next
    text = "".join(traceback.format_exception(type(exc), exc, tb)).rstrip("\n")
    return f"{ERROR_TAG} {text}"


class LocalPythonBackend:
    """Evaluate Python source in a persistent namespace inside this process.

    Top-level ``await`` is allowed. When the last statement is an expression,
    its value is the result, the way an interactive interpreter echoes it.
    Anything written to stdout/stderr while code runs is forwarded line by
    line to the callbacks given to start().
    """

    def __init__(self, preload_modules: list[str] | None = None) -> None:
        self.preload_modules = list(preload_modules or [])
        self._namespace: dict[str, Any] = {}
        self._on_stdout: OutputCallback = lambda text: None
        self._on_stderr: OutputCallback = lambda text: None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def namespace(self) -> dict[str, Any]:
        return self._namespace

    async def start(self, on_stdout: OutputCallback, on_stderr: OutputCallback) -> None:
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr
        self._namespace = {"__name__": "__main__", "__builtins__": builtins}
        _install_routing()

        for name in self.preload_modules:
            try:
                importlib.import_module(name)
            except ImportError as e:
                logger.warning("Failed to preload module %s: %s", name, e)
                self._on_stderr(f"Failed to preload module {name}: {e}")
                continue
            # Bind the top-level package, as `import a.b` would
            top = name.partition(".")[0]
            self._namespace[top] = importlib.import_module(top)
            logger.debug("Preloaded %s", name)

        self._ready = True
        logger.info("Python backend started (%d modules preloaded)", len(self.preload_modules))

    async def evaluate(self, code: str) -> str | None:
        if not self._ready:
            raise BackendUnavailable("Python backend is not started")

        _install_routing()
        stdout = _LineStream(self._on_stdout)
        stderr = _LineStream(self._on_stderr)
        stdout_token = _stdout_target.set(stdout)
        stderr_token = _stderr_target.set(stderr)
        try:
            value = await self._run(code)
        except asyncio.CancelledError as e:
            if _cancel_requested():
                raise
            logger.debug("Evaluation raised CancelledError")
            raise ExecutionError(_format_error(e)) from e
        except BaseException as e:
            # User code may raise anything, KeyboardInterrupt and SystemExit included
            logger.debug("Evaluation raised %s", type(e).__name__)
            raise ExecutionError(_format_error(e)) from e
        finally:
            _stdout_target.reset(stdout_token)
            _stderr_target.reset(stderr_token)
            stdout.flush_line()
            stderr.flush_line()

        return None if value is None else str(value)

    async def _run(self, code: str) -> Any:
        flags = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
        tree = compile(code, CONSOLE_FILENAME, "exec", flags=ast.PyCF_ONLY_AST | flags)

        trailing: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            trailing = ast.Expression(tree.body.pop().value)

        value = None
        units: list[tuple[ast.AST, str]] = [(tree, "exec")]
        if trailing is not None:
            units.append((trailing, "eval"))
        for node, mode in units:
            compiled = compile(node, CONSOLE_FILENAME, mode, flags=flags)
            value = eval(compiled, self._namespace)
            if compiled.co_flags & inspect.CO_COROUTINE:
                value = await value
        return value

    async def close(self) -> None:
        self._ready = False
        _remove_routing()
        self._namespace.clear()
        logger.info("Python backend closed")
