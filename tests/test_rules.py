"""Tests for rule records and rule-name validation."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from lintoracle.core.errors import InvalidConfigError
from lintoracle.rules.base_rule import Rule, resolve_rules
from lintoracle.rules.rule_utils import is_valid_rule_name, is_valid_rule_setting


class TestRuleNames:
    @pytest.mark.parametrize("name", ["no-console", "prefer_const", "a", "rule2", "@acme/no-console"])
    def test_valid(self, name) -> None:
        assert is_valid_rule_name(name)

    @pytest.mark.parametrize("name", ["", None, "No-Console", "1rule", "-rule", "@acme", "acme/rule", "@acme/x/y", "no console"])
    def test_invalid(self, name) -> None:
        assert not is_valid_rule_name(name)

    def test_settings(self) -> None:
        assert all(is_valid_rule_setting(s) for s in ("off", "warn", "error"))
        assert not is_valid_rule_setting("on") and not is_valid_rule_setting(None)


class TestRule:
    def test_defaults(self) -> None:
        rule = Rule(name="no-console")
        assert rule.level == "error" and rule.scope == "file" and rule.cacheable
        assert rule.display_title == "no-console" and rule.gritql_num_lines_context == 5

    def test_invalid_name(self) -> None:
        with pytest.raises(ValidationError):
            Rule(name="NoConsole")

    def test_invalid_level(self) -> None:
        with pytest.raises(ValidationError):
            Rule(name="no-console", level="fatal")

    def test_hooks_are_not_serialized(self) -> None:
        rule = Rule(name="no-console", process_file=lambda file, rule, config: None)
        assert "process_file" not in rule.model_dump()


class TestResolveRules:
    def test_from_dicts(self) -> None:
        rules = resolve_rules([{"name": "a", "title": "A"}, Rule(name="b")])
        assert [r.name for r in rules] == ["a", "b"] and rules[0].title == "A"

    def test_duplicate_names(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            resolve_rules([Rule(name="a"), Rule(name="b"), Rule(name="a")])
        assert exc.value.field_path == "rule_definitions[2].name"

    def test_invalid_definition(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            resolve_rules([{"name": "ok"}, {"title": "missing name"}])
        assert exc.value.field_path == "rule_definitions[1]"
