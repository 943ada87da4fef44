"""Turn pattern-match ranges into merged, context-padded partial file excerpts."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Any, Iterable

from lintoracle.core.source_file import SourceFile

__all__ = [
    "Position",
    "MatchRange",
    "MatchVariable",
    "Match",
    "PartialFile",
    "GritError",
    "GritClient",
    "parse_grit_matches",
    "resolve_match_ranges",
    "resolve_grit_pattern",
    "DEFAULT_NUM_LINES_CONTEXT",
]

logger = logging.getLogger(__name__)

DEFAULT_NUM_LINES_CONTEXT = 5


@dataclass(frozen=True)
class Position:
    line: int
    column: int = 0


@dataclass(frozen=True)
class MatchRange:
    start: Position
    end: Position

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchRange:
        return cls(start=Position(**_position(data["start"])), end=Position(**_position(data["end"])))


def _position(data: dict[str, Any]) -> dict[str, int]:
    return {"line": int(data["line"]), "column": int(data.get("column", 0))}


@dataclass(frozen=True)
class MatchVariable:
    name: str
    ranges: tuple[MatchRange, ...] = ()


@dataclass(frozen=True)
class Match:
    source_file: str
    ranges: tuple[MatchRange, ...] = ()
    variables: tuple[MatchVariable, ...] = ()

    @property
    def effective_ranges(self) -> tuple[MatchRange, ...]:
        """The ``$match`` variable's ranges when bound, else the match's own."""
        for variable in self.variables:
            if variable.name == "$match":
                return variable.ranges
        return self.ranges

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        return cls(
            source_file=data["sourceFile"],
            ranges=tuple(MatchRange.from_dict(r) for r in data.get("ranges") or []),
            variables=tuple(
                MatchVariable(name=v["name"], ranges=tuple(MatchRange.from_dict(r) for r in v.get("ranges") or []))
                for v in data.get("variables") or []
            ),
        )


@dataclass
class PartialFile:
    file: SourceFile
    ranges: list[MatchRange] = field(default_factory=list)
    partial_content: str = ""

    @property
    def has_matches(self) -> bool:
        return bool(self.ranges) and bool(self.partial_content.strip())

    def to_source_file(self) -> SourceFile:
        return self.file.with_partial(self.ranges, self.partial_content)


def _excerpt(lines: list[str], ranges: list[MatchRange], num_lines_context: int) -> str:
    excerpt: list[str] = []
    watermark = -1
    for r in ranges:
        # Never restart before the last emitted line so nothing is duplicated.
        start = max(0, watermark, r.start.line - 1 - num_lines_context)
        end = min(len(lines), r.end.line + num_lines_context)
        if start >= end:
            continue
        excerpt.extend(lines[start:end])
        watermark = max(watermark, end)
    return "\n".join(excerpt)


def resolve_match_ranges(
    matches: Iterable[Match],
    files: list[SourceFile],
    num_lines_context: int = DEFAULT_NUM_LINES_CONTEXT,
) -> list[PartialFile]:
    """Build one :class:`PartialFile` per input file, in input order.

    Files without matches still get a record with no ranges and an empty
    excerpt. Matches for unknown files are ignored.
    """
    partials: dict[str, PartialFile] = {}
    aliases: dict[str, str] = {}
    for f in files:
        partials.setdefault(f.file_path, PartialFile(file=f))
        aliases[f.file_relative_path] = f.file_path

    for match in matches:
        key = match.source_file if match.source_file in partials else aliases.get(match.source_file)
        if key is None:
            logger.warning("Ignoring match for unknown file %s", match.source_file)
            continue
        partials[key].ranges.extend(match.effective_ranges)

    for partial in partials.values():
        partial.ranges.sort(key=lambda r: r.start.line)
        partial.partial_content = _excerpt(partial.file.content.split("\n"), partial.ranges, num_lines_context)

    return list(partials.values())


def parse_grit_matches(output: str) -> list[Match]:
    """Parse ``grit apply --jsonl`` output, keeping only ``Match`` records."""
    matches: list[Match] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON grit output line: %s", line[:80])
            continue
        if isinstance(record, dict) and record.get("__typename") == "Match":
            matches.append(Match.from_dict(record))
    return matches


class GritError(Exception):
    def __init__(self, command: str, stderr: str, returncode: int) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"grit {command} failed (rc={returncode}): {stderr.strip()}")


class GritClient:
    """Thin subprocess wrapper around the ``grit`` CLI."""

    def __init__(self, binary: str | None = None, timeout: float = 120) -> None:
        self.binary = binary or shutil.which("grit")
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.binary is not None

    def apply_pattern(self, pattern: str, paths: list[str]) -> list[Match]:
        if self.binary is None:
            raise GritError("apply", "Could not find 'grit' binary in PATH", 127)
        cmd = [self.binary, "apply", "--dry-run", "--jsonl", pattern, *paths]
        logger.debug("Running: %s", " ".join(cmd[:5]))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise GritError("apply", f"Command timed out after {self.timeout}s", 124)
        if result.returncode != 0:
            raise GritError("apply", result.stderr, result.returncode)
        return parse_grit_matches(result.stdout)


def resolve_grit_pattern(
    pattern: str,
    files: list[SourceFile],
    num_lines_context: int = DEFAULT_NUM_LINES_CONTEXT,
    client: GritClient | None = None,
) -> dict[str, PartialFile]:
    """Partial files keyed by absolute path; empty when grit is unavailable."""
    client = client or GritClient()
    if not client.available:
        logger.debug("grit binary not found; skipping pattern %r", pattern)
        return {}
    matches = client.apply_pattern(pattern, [f.file_path for f in files])
    return {p.file.file_path: p for p in resolve_match_ranges(matches, files, num_lines_context)}
