"""Minimal block scanner for oracle replies: fenced code blocks and ATX headings."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["CodeBlock", "Heading", "MarkdownDocument", "parse_markdown"]

_FENCE_OPEN_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*([^`\s]*)[^`]*$")
_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")


@dataclass(frozen=True)
class CodeBlock:
    value: str
    lang: str | None
    line: int


@dataclass(frozen=True)
class Heading:
    text: str
    depth: int
    line: int


@dataclass(frozen=True)
class MarkdownDocument:
    code_blocks: tuple[CodeBlock, ...]
    headings: tuple[Heading, ...]

    def headings_at(self, depth: int) -> list[Heading]:
        return [h for h in self.headings if h.depth == depth]

    def code_blocks_between(self, start: Heading, end: Heading | None = None) -> list[CodeBlock]:
        stop = end.line if end is not None else float("inf")
        return [b for b in self.code_blocks if start.line < b.line < stop]


def parse_markdown(text: str) -> MarkdownDocument:
    """Scan *text* line by line. Headings inside code fences are ignored.

    An unterminated fence runs to the end of the document.
    """
    lines = text.splitlines()
    blocks: list[CodeBlock] = []
    headings: list[Heading] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        fence = _FENCE_OPEN_RE.match(line)
        if fence:
            marker = fence.group(1)
            lang = fence.group(2).lower() or None
            close_re = re.compile(rf"^ {{0,3}}{re.escape(marker[0])}{{{len(marker)},}}[ \t]*$")
            body: list[str] = []
            j = i + 1
            while j < len(lines) and not close_re.match(lines[j]):
                body.append(lines[j])
                j += 1
            blocks.append(CodeBlock(value="\n".join(body), lang=lang, line=i))
            i = j + 1
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            headings.append(Heading(text=(heading.group(2) or "").strip(), depth=len(heading.group(1)), line=i))
        i += 1
    return MarkdownDocument(code_blocks=tuple(blocks), headings=tuple(headings))
