"""Output classification and color policy."""

from __future__ import annotations

from pyconsole.session.models import (
    ERROR_TAG,
    HTML_CLOSE,
    HTML_OPEN,
    TERMINAL_TAG,
    WARNING_TAG,
    OutputClass,
)

OUTPUT_COLORS: dict[OutputClass, str] = {
    OutputClass.NONE: "inherit",
    OutputClass.ERROR: "#ff00ff",
    OutputClass.WARNING: "#FFA500",
    OutputClass.TERMINAL: "#22ffff",
    OutputClass.HTML: "inherit",
    OutputClass.PLAIN: "inherit",
}


def is_html(s: str | None) -> bool:
    return s is not None and s.startswith(HTML_OPEN) and s.endswith(HTML_CLOSE)


def classify(s: str | None) -> OutputClass:
    """Assign a rendering category to a result string.

    Rules are checked in order and the first match wins, so a string carrying
    the error tag is never reported as a warning.
    """
    if s is None:
        return OutputClass.NONE
    if is_html(s):
        return OutputClass.HTML
    if s.startswith(ERROR_TAG):
        return OutputClass.ERROR
    if s.startswith(WARNING_TAG):
        return OutputClass.WARNING
    if s.startswith(TERMINAL_TAG):
        return OutputClass.TERMINAL
    return OutputClass.PLAIN


def output_color(s: str | None) -> str:
    """Display color for a result string."""
    return OUTPUT_COLORS[classify(s)]
