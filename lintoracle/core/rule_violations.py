"""Parse candidate rule violations out of the oracle's free-form reply."""

from __future__ import annotations

import json
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter, ValidationError, field_validator

from lintoracle.core.errors import OutputParseError
from lintoracle.core.markdown import CodeBlock, parse_markdown

__all__ = [
    "RuleViolation",
    "parse_rule_violations_from_model_response",
    "safe_parse_rule_violations",
]


class RuleViolation(BaseModel):
    """One candidate violation exactly as the oracle reported it.

    Field order mirrors the schema shown to the model.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rule_name: Optional[str] = Field(default=None, alias="ruleName")
    code_snippet: str = Field(alias="codeSnippet")
    code_snippet_source: Optional[Literal["examples", "source"]] = Field(default=None, alias="codeSnippetSource")
    reasoning: Optional[str] = None
    violation: StrictBool
    confidence: Literal["low", "medium", "high"]

    @field_validator("code_snippet")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("codeSnippet must not be empty")
        return value


_VIOLATIONS_ADAPTER: TypeAdapter[list[RuleViolation]] = TypeAdapter(list[RuleViolation])


def safe_parse_rule_violations(text: str) -> tuple[list[RuleViolation] | None, str | None]:
    """Return ``(violations, None)`` on success or ``(None, diagnostic)``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return None, f"invalid JSON: {exc}"
    try:
        return _VIOLATIONS_ADAPTER.validate_python(data), None
    except ValidationError as exc:
        return None, str(exc)


def _select_violations_block(text: str) -> CodeBlock:
    doc = parse_markdown(text)
    blocks = doc.code_blocks

    if not blocks:
        raise OutputParseError(
            "Invalid output: missing VIOLATIONS code block which should contain an array of RULE_VIOLATION objects."
        )
    if len(blocks) == 1:
        return blocks[0]

    h1s = doc.headings_at(1)
    if not h1s:
        raise OutputParseError("Invalid output: missing EXPLANATION and VIOLATIONS header sections.")

    index = next((i for i in range(len(h1s) - 1, -1, -1) if "violation" in h1s[i].text.lower()), -1)
    if index < 0:
        raise OutputParseError(
            "Invalid output: missing VIOLATIONS header section which should contain a json code block "
            "with an array of RULE_VIOLATION objects."
        )

    following = h1s[index + 1] if index + 1 < len(h1s) else None
    candidates = doc.code_blocks_between(h1s[index], following)

    if len(candidates) > 1:
        json_blocks = [b for b in candidates if b.lang == "json"]
        if len(json_blocks) == 1:
            candidates = json_blocks
        elif not json_blocks:
            parseable = [b for b in candidates if safe_parse_rule_violations(b.value)[0] is not None]
            if len(parseable) == 1:
                candidates = parseable

    if not candidates:
        raise OutputParseError(
            "Invalid output: missing a valid json code block with an array of RULE_VIOLATION objects."
        )
    if len(candidates) > 1:
        raise OutputParseError(
            "Invalid output: the VIOLATIONS section should contain a single json code block "
            "with an array of RULE_VIOLATION objects."
        )
    return candidates[0]


def parse_rule_violations_from_model_response(text: str) -> list[RuleViolation]:
    """Extract the violations array from a markdown reply.

    Raises ``OutputParseError`` with a message suitable for sending back to the
    model when the reply is malformed.
    """
    block = _select_violations_block(text)
    violations, error = safe_parse_rule_violations(block.value)
    if violations is None:
        raise OutputParseError(
            "Invalid output: the VIOLATIONS code block does not contain valid RULE_VIOLATION objects. "
            "Please make sure the RULE_VIOLATION objects are formatted correctly according to their schema. "
            f"Parser error: {error}"
        )
    return violations
