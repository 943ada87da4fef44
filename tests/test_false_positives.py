"""Tests for the false-positive filter."""
from __future__ import annotations

import logging

import pytest

from lintoracle.core.false_positives import (
    filter_rule_violations, is_rule_violation_likely_false_positive, to_lint_error,
)
from lintoracle.core.rule_violations import RuleViolation


def _violation(**overrides) -> RuleViolation:
    fields = dict(
        rule_name="no-console",
        code_snippet="console.log('x')",
        code_snippet_source="source",
        reasoning="debug output",
        violation=True,
        confidence="high",
    )
    fields.update(overrides)
    return RuleViolation(**fields)


class TestIsLikelyFalsePositive:
    def test_kept(self, no_console_rule, app_file) -> None:
        assert not is_rule_violation_likely_false_positive(_violation(), app_file, no_console_rule)

    @pytest.mark.parametrize("confidence", ["medium", "low"])
    def test_non_high_confidence(self, no_console_rule, app_file, confidence) -> None:
        assert is_rule_violation_likely_false_positive(_violation(confidence=confidence), app_file, no_console_rule)

    def test_not_a_violation(self, no_console_rule, app_file) -> None:
        assert is_rule_violation_likely_false_positive(_violation(violation=False), app_file, no_console_rule)

    def test_snippet_from_examples(self, no_console_rule, app_file) -> None:
        assert is_rule_violation_likely_false_positive(_violation(code_snippet_source="examples"), app_file, no_console_rule)

    def test_missing_optional_fields(self, no_console_rule, app_file) -> None:
        violation = _violation(rule_name=None, code_snippet_source=None)
        assert not is_rule_violation_likely_false_positive(violation, app_file, no_console_rule)

    def test_snippet_in_negative_example(self, no_console_rule, app_file) -> None:
        violation = _violation(code_snippet="console.log('debug'")
        assert is_rule_violation_likely_false_positive(violation, app_file, no_console_rule)

    def test_rule_name_mismatch_warns(self, no_console_rule, app_file, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="lintoracle"):
            assert is_rule_violation_likely_false_positive(_violation(rule_name="prefer-const"), app_file, no_console_rule)
        assert "prefer-const" in caplog.text

    def test_rule_name_case_insensitive(self, no_console_rule, app_file) -> None:
        assert not is_rule_violation_likely_false_positive(_violation(rule_name=" No-Console "), app_file, no_console_rule)


class TestToLintError:
    def test_enriched(self, no_console_rule, app_file) -> None:
        error = to_lint_error(_violation(), app_file, no_console_rule, model="gpt-4o-mini", level="warn")
        assert error.file_path == app_file.file_path and error.language == "javascript"
        assert error.rule_name == "no-console" and error.model == "gpt-4o-mini" and error.level == "warn"
        assert error.reasoning == "debug output" and error.confidence == "high"

    def test_filter_keeps_order(self, no_console_rule, app_file) -> None:
        violations = [_violation(code_snippet="a()"), _violation(confidence="low"), _violation(code_snippet="b()")]
        errors = filter_rule_violations(violations, app_file, no_console_rule, model="m")
        assert [e.code_snippet for e in errors] == ["a()", "b()"]
