"""Lint results, final lint errors, and the merge operation over them."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

__all__ = [
    "SkipReason",
    "LintError",
    "LintResult",
    "create_lint_result",
    "merge_lint_results",
    "now_ms",
]


class SkipReason(str, Enum):
    CACHED = "cached"
    EMPTY = "empty"
    RULE_DISABLED = "rule-disabled"
    INLINE_DISABLED = "inline-linter-disabled"
    GRIT_PATTERN = "grit-pattern"
    CUSTOM = "custom"


def now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class LintError:
    file_path: str
    language: str
    rule_name: str
    code_snippet: str
    confidence: str
    level: str = "error"
    reasoning: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LintError:
        return cls(**data)


@dataclass
class LintResult:
    lint_errors: list[LintError] = field(default_factory=list)
    message: str | None = None
    skipped: bool = False
    skip_reason: SkipReason | None = None
    skip_detail: str | None = None
    num_model_calls: int = 0
    num_model_calls_cached: int = 0
    num_prompt_tokens: int = 0
    num_completion_tokens: int = 0
    num_total_tokens: int = 0
    total_cost: float = 0.0
    started_at_ms: float = field(default_factory=now_ms)
    ended_at_ms: float | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.ended_at_ms is None:
            return None
        return max(0.0, self.ended_at_ms - self.started_at_ms)

    @property
    def has_errors(self) -> bool:
        return any(e.level == "error" for e in self.lint_errors)

    def to_cache_value(self) -> dict[str, Any]:
        """The portion of a result worth replaying from the cache."""
        return {
            "lint_errors": [e.to_dict() for e in self.lint_errors],
            "message": self.message,
        }


def create_lint_result(**overrides: Any) -> LintResult:
    return LintResult(**overrides)


def _later(a: Any, b: Any) -> Any:
    return b if b not in (None, "") else a


def merge_lint_results(a: LintResult, b: LintResult) -> LintResult:
    """Combine two results.

    Counters are summed, error lists concatenated in ``a``-then-``b`` order,
    start times take the min, end times the max, and message / skip metadata
    prefer ``b`` when it is set.
    """
    if a.ended_at_ms is not None and b.ended_at_ms is not None:
        ended = max(a.ended_at_ms, b.ended_at_ms)
    else:
        ended = b.ended_at_ms if b.ended_at_ms is not None else a.ended_at_ms
    return LintResult(
        lint_errors=[*a.lint_errors, *b.lint_errors],
        message=_later(a.message, b.message),
        skipped=a.skipped or b.skipped,
        skip_reason=_later(a.skip_reason, b.skip_reason),
        skip_detail=_later(a.skip_detail, b.skip_detail),
        num_model_calls=a.num_model_calls + b.num_model_calls,
        num_model_calls_cached=a.num_model_calls_cached + b.num_model_calls_cached,
        num_prompt_tokens=a.num_prompt_tokens + b.num_prompt_tokens,
        num_completion_tokens=a.num_completion_tokens + b.num_completion_tokens,
        num_total_tokens=a.num_total_tokens + b.num_total_tokens,
        total_cost=a.total_cost + b.total_cost,
        started_at_ms=min(a.started_at_ms, b.started_at_ms),
        ended_at_ms=ended,
    )
