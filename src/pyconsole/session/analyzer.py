"""Line continuation rules for the multi-line input buffer."""

from __future__ import annotations

import logging

from pyconsole.session.models import CONTINUATION_PREFIX, KeyAction, KeyEvent

logger = logging.getLogger(__name__)

ENTER = "Enter"
TAB = "Tab"
ARROW_UP = "ArrowUp"
ARROW_DOWN = "ArrowDown"

# Trailing markers that mean the statement is not finished yet
CONTINUATION_MARKERS: tuple[str, ...] = (":", "\\")


def last_line(text: str) -> str:
    return text.split("\n")[-1]


def is_continue_last_line(text: str) -> bool:
    """Check if the last line opens a block or continues onto the next line."""
    return last_line(text).endswith(CONTINUATION_MARKERS)


def is_multiline(text: str) -> bool:
    """Check for a multi-line buffer that still lacks its blank terminator line."""
    lines = text.split("\n")
    return len(lines) > 1 and lines[-1] != ""


def to_multiline(text: str) -> str:
    """Prefix every line after the first with the continuation marker."""
    return "\n".join(
        line if index == 0 else f"{CONTINUATION_PREFIX}{line}"
        for index, line in enumerate(text.split("\n"))
    )


class LineAnalyzer:
    """Map key presses on the input buffer to controller actions."""

    def decide(self, buffer: str, event: KeyEvent) -> KeyAction | None:
        """Decide what a key press does. Returns None for keys left to the widget."""
        action = self._classify_key(buffer, event)
        if action is not None:
            event.prevent_default()
            logger.debug("Key %s (shift=%s) -> %s", event.key, event.shift, action.value)
        return action

    def _classify_key(self, buffer: str, event: KeyEvent) -> KeyAction | None:
        if event.key == ENTER:
            if event.shift:
                return KeyAction.INSERT_NEWLINE
            if is_continue_last_line(buffer) or is_multiline(buffer):
                return KeyAction.INSERT_NEWLINE
            return KeyAction.SUBMIT

        if event.key == TAB:
            return KeyAction.ARM_TAB_COMPLETION if event.caret_on_last_line else None

        if event.shift:
            return None
        if event.key == ARROW_UP:
            return KeyAction.RECALL_OLDER
        if event.key == ARROW_DOWN:
            return KeyAction.RECALL_NEWER
        return None
