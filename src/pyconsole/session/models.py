"""Data models for the console session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

VERSION_PROBE_INPUT = "Python version"
VERSION_PROBE_CODE = "import sys; sys.version"

ERROR_TAG = "PythonError:"
WARNING_TAG = "PythonWarning:"
TERMINAL_TAG = "[Terminal]"

HTML_OPEN = "<html>"
HTML_CLOSE = "</html>"

CONTINUATION_PREFIX = "... "


class OutputClass(str, Enum):
    """Rendering category of a transcript output."""

    NONE = "none"
    ERROR = "error"
    WARNING = "warning"
    TERMINAL = "terminal"
    HTML = "html"
    PLAIN = "plain"


class ExecutionState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


class KeyAction(str, Enum):
    """What the controller does with a key press."""

    INSERT_NEWLINE = "insert_newline"
    SUBMIT = "submit"
    ARM_TAB_COMPLETION = "arm_tab_completion"
    RECALL_OLDER = "recall_older"
    RECALL_NEWER = "recall_newer"


@dataclass
class TranscriptEntry:
    """One submission (or out-of-band output) and its result."""

    input: str = ""
    output: str | None = None
    classification: OutputClass = OutputClass.NONE

    @property
    def is_version_probe(self) -> bool:
        return self.input == VERSION_PROBE_INPUT

    @property
    def is_synthetic(self) -> bool:
        """True for entries built from terminal output with no submission."""
        return self.input == ""

    @property
    def is_navigable(self) -> bool:
        return not (self.is_synthetic or self.is_version_probe)


@dataclass
class KeyEvent:
    """A key press as seen by the input widget."""

    key: str
    shift: bool = False
    caret_on_last_line: bool = True
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class CompletionResult:
    """Buffer text after completion, plus every candidate the backend offered."""

    text: str
    candidates: list[str] = field(default_factory=list)
