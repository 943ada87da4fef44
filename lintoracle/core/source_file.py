"""Source files as consumed by the linting pipeline."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lintoracle.core.match_ranges import MatchRange

__all__ = ["SourceFile", "detect_language", "read_source_file", "resolve_files", "matches_any"]

logger = logging.getLogger(__name__)

_EXTENSION_LANGUAGES: dict[str, str] = {
    ".py": "python", ".pyi": "python",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript", ".jsx": "javascript",
    ".ts": "typescript", ".tsx": "typescript", ".mts": "typescript", ".cts": "typescript",
    ".go": "go", ".rs": "rust", ".rb": "ruby", ".java": "java", ".kt": "kotlin",
    ".c": "c", ".h": "c", ".cpp": "cpp", ".hpp": "cpp", ".cs": "csharp",
    ".swift": "swift", ".php": "php", ".lua": "lua", ".sh": "bash", ".bash": "bash",
    ".sql": "sql", ".md": "markdown", ".yaml": "yaml", ".yml": "yaml",
    ".json": "json", ".html": "html", ".css": "css", ".scss": "scss",
}


@dataclass(frozen=True)
class SourceFile:
    """An immutable snapshot of one file read from disk."""

    file_path: str
    file_relative_path: str
    file_name: str
    content: str
    language: str
    ranges: tuple[MatchRange, ...] = field(default=(), compare=False)
    partial_content: str | None = field(default=None, compare=False)

    @property
    def is_partial(self) -> bool:
        return self.partial_content is not None

    def with_partial(self, ranges: list[MatchRange], partial_content: str) -> SourceFile:
        return replace(self, ranges=tuple(ranges), partial_content=partial_content)


def detect_language(path: str | Path) -> str:
    return _EXTENSION_LANGUAGES.get(Path(path).suffix.lower(), "text")


def read_source_file(path: Path, root_dir: Path | None = None) -> SourceFile:
    root = (root_dir or Path.cwd()).resolve()
    resolved = path.resolve()
    try:
        relative = resolved.relative_to(root).as_posix()
    except ValueError:
        relative = resolved.as_posix()
    return SourceFile(
        file_path=str(resolved),
        file_relative_path=relative,
        file_name=resolved.name,
        content=resolved.read_text(encoding="utf-8", errors="replace"),
        language=detect_language(resolved),
    )


def matches_any(relative_path: str, patterns: list[str]) -> bool:
    return any(fnmatch.fnmatch(relative_path, pattern) for pattern in patterns)


def resolve_files(
    patterns: list[str],
    root_dir: Path,
    ignores: list[str] | None = None,
) -> list[SourceFile]:
    """Expand glob patterns (or explicit paths) under *root_dir* into source files."""
    root = root_dir.resolve()
    seen: set[Path] = set()
    files: list[SourceFile] = []
    for pattern in patterns:
        explicit = root / pattern
        candidates = [explicit] if explicit.is_file() else sorted(root.glob(pattern))
        for candidate in candidates:
            resolved = candidate.resolve()
            if not resolved.is_file() or resolved in seen:
                continue
            seen.add(resolved)
            source = read_source_file(resolved, root)
            if ignores and matches_any(source.file_relative_path, ignores):
                logger.debug("Ignoring %s", source.file_relative_path)
                continue
            files.append(source)
    return files
