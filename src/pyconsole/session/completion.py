"""Tab completion of member names via backend reflection."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable

from pyconsole.errors import CompletionError
from pyconsole.services.backend import ExecutionBackend
from pyconsole.session.models import CompletionResult

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Python is still loading. Please wait..."

# Trailing dotted name, optionally ending in a call or subscript: `a.b`, `f()`, `x[0].y`
_TRAILING_EXPR = re.compile(r"[A-Za-z_][\w.]*(?:\([^()]*\)|\[[^\[\]]*\])*(?:\.[A-Za-z_]\w*(?:\([^()]*\)|\[[^\[\]]*\])*)*$")
_TRAILING_NAME = re.compile(r"[A-Za-z_]\w*$")


def split_last_line(text: str) -> tuple[str, str, str]:
    """Split a buffer into (earlier lines, object part, partial token).

    The object part is everything on the last line before its last ``.``; the
    partial token is everything after it. Without a ``.`` the object part is
    empty and the token is the trailing identifier (the rest of the line stays
    in the object part's place so nothing is lost on replacement).
    """
    head, sep, last = text.rpartition("\n")
    prefix = head + sep
    dot = last.rfind(".")
    if dot == -1:
        match = _TRAILING_NAME.search(last)
        token = match.group(0) if match else ""
        return prefix, last[: len(last) - len(token)], token
    return prefix, last[:dot], last[dot + 1 :]


def reflection_target(object_part: str) -> str:
    """Expression whose members are listed: the trailing expression of the object part."""
    match = _TRAILING_EXPR.search(object_part.rstrip())
    return match.group(0) if match else object_part.strip()


def reflection_code(target: str) -> str:
    """Expression evaluating to a JSON list of member names, without binding anything.

    An empty target lists the console namespace together with the builtins.
    """
    if not target:
        return "__import__('json').dumps(sorted({*dir(), *dir(__import__('builtins'))}))"
    return f"__import__('json').dumps(dir({target}))"


class CompletionEngine:
    """Complete the token under the cursor with the first matching member name."""

    def __init__(self, backend: ExecutionBackend, notify: Callable[[str], None]) -> None:
        self.backend = backend
        self._notify = notify

    async def candidates(self, target: str) -> list[str]:
        """Member names of target, in the order the backend lists them."""
        try:
            raw = await self.backend.evaluate(reflection_code(target))
            names = json.loads(raw or "[]")
        except Exception as e:
            raise CompletionError(str(e)) from e
        if not isinstance(names, list):
            raise CompletionError(f"Unexpected reflection result: {raw!r}")
        return [str(name) for name in names]

    async def complete(self, buffer: str) -> CompletionResult:
        prefix, object_part, token = split_last_line(buffer)
        has_dot = "." in buffer.rpartition("\n")[2]

        if not self.backend.ready:
            self._notify(NOT_READY_MESSAGE)
            return CompletionResult(buffer, [])

        target = reflection_target(object_part) if has_dot else ""
        try:
            names = await self.candidates(target)
        except CompletionError as e:
            logger.warning("Completion for %r failed: %s", target, e)
            self._notify(f"Error fetching suggestions: {e}")
            return CompletionResult(buffer, [])

        if not token:
            return CompletionResult(buffer, names)

        match = next((name for name in names if name.startswith(token)), None)
        if match is None:
            return CompletionResult(buffer, names)

        if has_dot:
            return CompletionResult(f"{prefix}{object_part}.{match}", names)
        return CompletionResult(f"{prefix}{object_part}{match}", names)
