"""Tests for history navigation."""

from __future__ import annotations

from pyconsole.session.models import VERSION_PROBE_INPUT, TranscriptEntry
from pyconsole.session.navigator import HistoryNavigator


def _entries(*inputs: str) -> list[TranscriptEntry]:
    return [TranscriptEntry(input=text, output="out") for text in inputs]


class TestRecallOlder:
    def test_empty_is_noop(self):
        nav = HistoryNavigator()
        assert nav.recall_older("draft") == "draft"
        assert nav.cursor == -1

    def test_most_recent_first(self):
        nav = HistoryNavigator(_entries("a", "b", "c"))
        assert nav.recall_older("") == "c"
        assert nav.cursor == 0
        assert nav.recall_older("c") == "b"
        assert nav.recall_older("b") == "a"
        assert nav.cursor == 2

    def test_stops_at_oldest(self):
        nav = HistoryNavigator(_entries("a", "b"))
        nav.recall_older("")
        nav.recall_older("b")
        assert nav.recall_older("a") == "a"
        assert nav.cursor == 1

    def test_skips_non_navigable_entries(self):
        nav = HistoryNavigator(_entries("a", "", VERSION_PROBE_INPUT, "", "b", ""))
        assert nav.recall_older("") == "b"
        assert nav.recall_older("b") == "a"
        assert nav.cursor == 1
        assert nav.navigable_count == 2

    def test_only_probe_and_synthetic_is_noop(self):
        nav = HistoryNavigator(_entries(VERSION_PROBE_INPUT, "", ""))
        assert nav.recall_older("") == ""
        assert nav.cursor == -1

    def test_non_navigable_at_oldest_boundary(self):
        nav = HistoryNavigator(_entries(VERSION_PROBE_INPUT, "", "a", ""))
        assert nav.recall_older("") == "a"
        assert nav.recall_older("a") == "a"
        assert nav.cursor == 0


class TestRecallNewer:
    def test_noop_when_not_navigating(self):
        nav = HistoryNavigator(_entries("a"))
        assert nav.recall_newer("typing") == "typing"
        assert nav.cursor == -1

    def test_back_to_live_input(self):
        nav = HistoryNavigator(_entries("a"))
        nav.recall_older("")
        assert nav.recall_newer("a") == ""
        assert nav.cursor == -1

    def test_skips_non_navigable_entries(self):
        nav = HistoryNavigator(_entries("a", "", "", "b", VERSION_PROBE_INPUT, "c"))
        for _ in range(3):
            nav.recall_older("")
        assert nav.cursor == 2
        assert nav.recall_newer("a") == "b"
        assert nav.recall_newer("b") == "c"
        assert nav.cursor == 0

    def test_round_trip_restores_draft(self):
        nav = HistoryNavigator(_entries("a", "", "b", VERSION_PROBE_INPUT, "c"))
        text = "half typed"
        for _ in range(3):
            text = nav.recall_older(text)
        for _ in range(3):
            text = nav.recall_newer(text)
        assert nav.cursor == -1
        assert text == "half typed"

    def test_entries_appended_while_navigating(self):
        nav = HistoryNavigator(_entries("a", "b"))
        nav.recall_older("")
        nav.append(TranscriptEntry(input="", output="[Terminal]\nx"))
        assert nav.recall_older("b") == "a"
        assert nav.recall_newer("a") == "b"


class TestReset:
    def test_reset(self):
        nav = HistoryNavigator(_entries("a", "b"))
        nav.recall_older("draft")
        assert nav.reset() == ""
        assert nav.cursor == -1
        assert nav.recall_older("") == "b"

    def test_append_does_not_reorder(self):
        nav = HistoryNavigator(_entries("a"))
        nav.append(TranscriptEntry(input="b"))
        assert [e.input for e in nav.entries] == ["a", "b"]
        assert len(nav) == 2

    def test_walk_after_returning_to_live(self):
        nav = HistoryNavigator(_entries("a", "b", "c"))
        nav.recall_older("")
        nav.recall_older("c")
        nav.recall_newer("b")
        assert nav.recall_newer("c") == ""
        assert nav.recall_newer("") == ""
        assert nav.recall_older("") == "c"
        assert nav.recall_older("c") == "b"
