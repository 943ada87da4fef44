"""Inline ``lintoracle`` directives embedded in source files.

Directives may live in C-style block comments or in ``#`` / ``//`` line
comments, each on its own line::

    /* lintoracle-disable */
    # lintoracle-enable
    // lintoracle no-console: off, @acme/naming: warn
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lintoracle.core.errors import InlineConfigError
from lintoracle.rules.rule_utils import is_valid_rule_name, is_valid_rule_setting

if TYPE_CHECKING:
    from lintoracle.core.source_file import SourceFile

__all__ = ["InlineConfig", "parse_inline_config"]


def _directive(body: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*(?:/\*+[ \t]*{body}[ \t]*\*+/|(?:\#|//)[ \t]*{body}[ \t]*$)",
        re.IGNORECASE | re.MULTILINE,
    )


_DISABLE_RE = _directive(r"lintoracle-disable")
_ENABLE_RE = _directive(r"lintoracle-enable")
_BLOCK_SETTINGS_RE = re.compile(r"^[ \t]*/\*+[ \t]*lintoracle[ \t]+([^*\n]+?)[ \t]*\*+/", re.IGNORECASE | re.MULTILINE)
_PAIR = r"[^\s:,]+[ \t]*:[ \t]*[^\s:,]+"
# A line comment is a directive only when its body is a list of "<name>: <setting>" pairs.
_LINE_SETTINGS_RE = re.compile(
    rf"^[ \t]*(?:\#|//)[ \t]*lintoracle[ \t]+({_PAIR}(?:[ \t]*,[ \t]*{_PAIR})*)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass(frozen=True)
class InlineConfig:
    disabled: bool = False
    rules: dict[str, str] = field(default_factory=dict)


def _last_index(pattern: re.Pattern[str], content: str) -> int:
    last = -1
    for match in pattern.finditer(content):
        last = max(last, match.start())
    return last


def _parse_settings(directive: str, file_path: str, rules: dict[str, str]) -> None:
    for part in directive.split(","):
        pieces = [p.strip().lower() for p in part.split(":")]
        if len(pieces) != 2:
            raise InlineConfigError(file_path, directive, "expected '<rule-name>: <setting>'")
        rule_name, setting = pieces
        if not is_valid_rule_name(rule_name):
            raise InlineConfigError(file_path, directive, f'invalid rule name "{rule_name}"')
        if not is_valid_rule_setting(setting):
            raise InlineConfigError(file_path, directive, f'invalid rule setting "{setting}"')
        rules[rule_name] = setting


def parse_inline_config(file: SourceFile) -> InlineConfig | None:
    """Return the file's inline overrides, or ``None`` when it has no directives.

    Linting is disabled when the last disable directive comes after the last
    enable directive. Setting directives accumulate; a repeated rule name keeps
    its last value. Any malformed setting directive raises ``InlineConfigError``.
    """
    content = file.content
    last_disable = _last_index(_DISABLE_RE, content)
    last_enable = _last_index(_ENABLE_RE, content)
    if last_disable >= 0 and last_disable > last_enable:
        return InlineConfig(disabled=True)

    directives = [(m.start(), m.group(1).strip()) for m in _BLOCK_SETTINGS_RE.finditer(content)]
    directives += [(m.start(), m.group(1).strip()) for m in _LINE_SETTINGS_RE.finditer(content)]

    rules: dict[str, str] = {}
    for _, directive in sorted(directives):
        if directive:
            _parse_settings(directive, file.file_relative_path, rules)

    if rules:
        return InlineConfig(rules=rules)
    return None
