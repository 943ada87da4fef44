"""Heuristics for discarding candidate violations that are likely false positives."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lintoracle.core.lint_result import LintError

if TYPE_CHECKING:
    from lintoracle.core.rule_violations import RuleViolation
    from lintoracle.core.source_file import SourceFile
    from lintoracle.rules.base_rule import Rule

__all__ = ["is_rule_violation_likely_false_positive", "to_lint_error", "filter_rule_violations"]

logger = logging.getLogger(__name__)


def is_rule_violation_likely_false_positive(violation: RuleViolation, file: SourceFile, rule: Rule) -> bool:
    if not violation.violation:
        return True
    # Only "high" is accepted; medium and low are suppressed.
    if violation.confidence != "high":
        return True
    if violation.code_snippet_source is not None and violation.code_snippet_source != "source":
        return True

    if violation.rule_name is not None:
        reported = violation.rule_name.strip().lower()
        if reported != rule.name:
            logger.warning(
                'rule "%s" oracle reported a violation for unrecognized rule name "%s" on file "%s"',
                rule.name, reported, file.file_relative_path,
            )
            return True

    for example in rule.negative_examples:
        if violation.code_snippet in example.code:
            return True

    return False


def to_lint_error(violation: RuleViolation, file: SourceFile, rule: Rule, *, model: str | None, level: str = "error") -> LintError:
    return LintError(
        file_path=file.file_path,
        language=file.language,
        rule_name=rule.name,
        code_snippet=violation.code_snippet,
        confidence=violation.confidence,
        level=level,
        reasoning=violation.reasoning,
        model=model,
    )


def filter_rule_violations(
    violations: list[RuleViolation],
    file: SourceFile,
    rule: Rule,
    *,
    model: str | None,
    level: str = "error",
) -> list[LintError]:
    errors: list[LintError] = []
    for violation in violations:
        if is_rule_violation_likely_false_positive(violation, file, rule):
            logger.debug('Dropping likely false positive for %s: %r', rule.name, violation.code_snippet)
            continue
        errors.append(to_lint_error(violation, file, rule, model=model, level=level))
    return errors
