"""Tests for match-range resolution and the grit pre-filter."""
from __future__ import annotations

import json

import pytest

from lintoracle.core.match_ranges import (
    GritClient, GritError, Match, MatchRange, MatchVariable, Position,
    parse_grit_matches, resolve_grit_pattern, resolve_match_ranges,
)
from tests.conftest import make_source_file

TEN_LINES = "\n".join(f"line {i}" for i in range(1, 11))


def _range(start: int, end: int) -> MatchRange:
    return MatchRange(start=Position(start), end=Position(end))


def _lines(start: int, end: int) -> str:
    return "\n".join(f"line {i}" for i in range(start, end + 1))


class TestResolveMatchRanges:
    def test_overlapping_ranges_merge_without_duplicates(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        match = Match(source_file=file.file_path, ranges=(_range(2, 5), _range(4, 8)))
        [partial] = resolve_match_ranges([match], [file], num_lines_context=0)
        assert partial.partial_content == _lines(2, 8)
        assert len(partial.ranges) == 2

    def test_unsorted_input_is_sorted(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        matches = [Match(file.file_path, (_range(7, 7),)), Match(file.file_path, (_range(2, 2),))]
        [partial] = resolve_match_ranges(matches, [file], num_lines_context=0)
        assert [r.start.line for r in partial.ranges] == [2, 7]
        assert partial.partial_content == "line 2\nline 7"

    def test_context_padding_is_clamped(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        [partial] = resolve_match_ranges([Match(file.file_path, (_range(2, 3),))], [file], num_lines_context=2)
        assert partial.partial_content == _lines(1, 5)
        [partial] = resolve_match_ranges([Match(file.file_path, (_range(9, 10),))], [file], num_lines_context=5)
        assert partial.partial_content == _lines(4, 10)

    def test_adjacent_context_merges(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        match = Match(file.file_path, (_range(2, 2), _range(6, 6)))
        [partial] = resolve_match_ranges([match], [file], num_lines_context=2)
        assert partial.partial_content == _lines(1, 8)

    def test_contained_range_adds_nothing(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        match = Match(file.file_path, (_range(3, 8), _range(4, 5)))
        [partial] = resolve_match_ranges([match], [file], num_lines_context=0)
        assert partial.partial_content == _lines(3, 8)

    def test_file_without_matches_keeps_record(self) -> None:
        a = make_source_file("a.py", content=TEN_LINES)
        b = make_source_file("b.py", content=TEN_LINES)
        partials = resolve_match_ranges([Match(a.file_path, (_range(1, 1),))], [a, b], num_lines_context=0)
        assert [p.file for p in partials] == [a, b]
        assert partials[1].ranges == [] and partials[1].partial_content == "" and not partials[1].has_matches
        assert partials[0].has_matches

    def test_match_variable_preferred(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        match = Match(file.file_path, (_range(1, 10),), (MatchVariable("$match", (_range(4, 4),)),))
        [partial] = resolve_match_ranges([match], [file], num_lines_context=0)
        assert partial.partial_content == "line 4"

    def test_relative_path_and_unknown_files(self) -> None:
        file = make_source_file("src/a.py", content=TEN_LINES)
        matches = [Match("src/a.py", (_range(3, 3),)), Match("elsewhere.py", (_range(1, 1),))]
        [partial] = resolve_match_ranges(matches, [file], num_lines_context=0)
        assert partial.partial_content == "line 3"

    def test_to_source_file(self) -> None:
        file = make_source_file("a.py", content=TEN_LINES)
        [partial] = resolve_match_ranges([Match(file.file_path, (_range(2, 2),))], [file], num_lines_context=0)
        view = partial.to_source_file()
        assert view.is_partial and view.partial_content == "line 2" and view.content == TEN_LINES and not file.is_partial


def _match_record(path: str, start: int, end: int) -> dict:
    return {
        "__typename": "Match",
        "sourceFile": path,
        "ranges": [{"start": {"line": start, "column": 1}, "end": {"line": end, "column": 4}}],
        "variables": [],
    }


class TestParseGritMatches:
    def test_keeps_only_matches(self) -> None:
        output = "\n".join([
            json.dumps(_match_record("a.py", 2, 3)),
            json.dumps({"__typename": "AllDone", "processed": 1}),
            "not json",
            "",
        ])
        [match] = parse_grit_matches(output)
        assert match.source_file == "a.py" and match.ranges == (MatchRange(Position(2, 1), Position(3, 4)),)


class _FakeGrit(GritClient):
    def __init__(self, matches=None, available=True, error=None) -> None:
        super().__init__(binary="grit")
        self.binary = "grit" if available else None
        self.matches = matches or []
        self.error = error
        self.calls: list[tuple[str, list[str]]] = []

    def apply_pattern(self, pattern, paths):
        self.calls.append((pattern, paths))
        if self.error:
            raise self.error
        return self.matches


class TestResolveGritPattern:
    def test_missing_binary_returns_empty(self) -> None:
        client = _FakeGrit(available=False)
        assert resolve_grit_pattern("`print($x)`", [make_source_file("a.py")], client=client) == {}
        assert not client.calls

    def test_keyed_by_path(self) -> None:
        a = make_source_file("a.py", content=TEN_LINES)
        b = make_source_file("b.py", content=TEN_LINES)
        client = _FakeGrit(matches=parse_grit_matches(json.dumps(_match_record(a.file_path, 5, 5))))
        partials = resolve_grit_pattern("`print($x)`", [a, b], num_lines_context=1, client=client)
        assert partials[a.file_path].partial_content == _lines(4, 6) and not partials[b.file_path].has_matches
        assert client.calls == [("`print($x)`", [a.file_path, b.file_path])]

    def test_errors_propagate(self) -> None:
        client = _FakeGrit(error=GritError("apply", "bad pattern", 1))
        with pytest.raises(GritError):
            resolve_grit_pattern("`(`", [make_source_file("a.py")], client=client)
