"""Rule name and setting validation helpers."""

from __future__ import annotations

import re

__all__ = ["RULE_SETTINGS", "is_valid_rule_name", "is_valid_rule_setting"]

RULE_SETTINGS: tuple[str, ...] = ("off", "warn", "error")

_RULE_NAME_RE = re.compile(r"[a-z][\w-]*")
_RULE_SCOPE_RE = re.compile(r"@[a-z][\w-]*")


def is_valid_rule_name(name: str | None) -> bool:
    """Lowercase kebab-case, optionally namespaced as ``@scope/name``."""
    if not name:
        return False
    if name.lower() != name:
        return False
    parts = name.split("/")
    if len(parts) == 2:
        return bool(_RULE_SCOPE_RE.fullmatch(parts[0]) and _RULE_NAME_RE.fullmatch(parts[1]))
    return bool(_RULE_NAME_RE.fullmatch(name))


def is_valid_rule_setting(value: str | None) -> bool:
    return bool(value) and value in RULE_SETTINGS
