"""Tests for output classification."""

from __future__ import annotations

from pyconsole.session.classifier import OUTPUT_COLORS, classify, is_html, output_color
from pyconsole.session.models import OutputClass


class TestClassify:
    def test_none(self):
        assert classify(None) is OutputClass.NONE

    def test_html(self):
        assert classify("<html>hi</html>") is OutputClass.HTML

    def test_html_requires_both_tags(self):
        assert classify("<html>hi") is OutputClass.PLAIN
        assert classify("hi</html>") is OutputClass.PLAIN

    def test_error(self):
        assert classify("PythonError: Traceback (most recent call last)") is OutputClass.ERROR

    def test_warning(self):
        assert classify("PythonWarning: deprecated") is OutputClass.WARNING

    def test_terminal(self):
        assert classify("[Terminal]\nhello") is OutputClass.TERMINAL

    def test_plain(self):
        assert classify("2") is OutputClass.PLAIN
        assert classify("") is OutputClass.PLAIN

    def test_error_never_warning(self):
        # Both tags share the "Python" prefix; the error rule comes first
        assert classify("PythonError: PythonWarning: x") is OutputClass.ERROR

    def test_html_wins_over_error_tag_inside(self):
        assert classify("<html>PythonError: x</html>") is OutputClass.HTML

    def test_tag_must_be_prefix(self):
        assert classify(" PythonError: x") is OutputClass.PLAIN

    def test_is_html(self):
        assert is_html("<html></html>")
        assert not is_html(None)


class TestColors:
    def test_total(self):
        assert set(OUTPUT_COLORS) == set(OutputClass)

    def test_fixed_colors(self):
        assert OUTPUT_COLORS[OutputClass.ERROR] == "#ff00ff"
        assert OUTPUT_COLORS[OutputClass.WARNING] == "#FFA500"
        assert OUTPUT_COLORS[OutputClass.TERMINAL] == "#22ffff"
        assert OUTPUT_COLORS[OutputClass.PLAIN] == "inherit"

    def test_output_color(self):
        assert output_color("PythonError: x") == "#ff00ff"
        assert output_color(None) == "inherit"
