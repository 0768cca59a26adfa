"""Error taxonomy for the console session."""

from __future__ import annotations


class ConsoleError(Exception):
    """Base class for console errors."""


class BackendUnavailable(ConsoleError):
    """The execution backend has not finished starting."""


class ExecutionError(ConsoleError):
    """The backend rejected the submitted code."""


class CompletionError(ConsoleError):
    """The reflection query behind tab completion failed."""


class PersistenceError(ConsoleError):
    """Reading from or writing to the history store failed."""
