"""Tests for configuration loading."""
from __future__ import annotations

import textwrap

import pytest

from lintoracle.config.settings import LinterOptions, LinterSettings, LLMOptions, load_settings, merge_settings, parse_settings
from lintoracle.core.errors import InvalidConfigError
from lintoracle.rules.base_rule import Rule


class TestLinterSettings:
    def test_defaults(self) -> None:
        s = LinterSettings()
        assert s.files == ["**/*.py"] and s.rules == {} and s.rule_definitions == []
        assert s.linter_options.concurrency == 16 and s.linter_options.max_output_retries == 2
        assert s.linter_options.max_task_retries == 2 and not s.linter_options.fail_fast
        assert s.llm_options.model == "gpt-4o-mini" and s.llm_options.temperature == 0.0
        assert set(LLMOptions.model_fields) == {"model", "temperature", "api_base_url", "api_key"}

    def test_api_key_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        s = LinterSettings()
        assert s.llm_options.api_key == "sk-test" and "sk-test" not in repr(s.llm_options)

    def test_rule_setting_falls_back_to_rule_level(self) -> None:
        s = LinterSettings(rules={"a": "warn"})
        assert s.rule_setting(Rule(name="a")) == "warn" and s.rule_setting(Rule(name="b", level="off")) == "off"


class TestParseSettings:
    def test_invalid_rule_setting_names_field(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            parse_settings({"rules": {"no-console": "loud"}})
        assert exc.value.field_path == "rules.no-console"

    def test_invalid_rule_name(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            parse_settings({"rules": {"No Console": "off"}})
        assert exc.value.field_path == "rules"

    def test_invalid_option(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            parse_settings({"linter_options": {"concurrency": 0}})
        assert exc.value.field_path == "linter_options.concurrency"

    def test_rule_definitions(self) -> None:
        s = parse_settings({"rule_definitions": [{"name": "no-console", "negative_examples": [{"code": "console.log(1)"}]}]})
        assert isinstance(s.rule_definitions[0], Rule) and s.rule_definitions[0].negative_examples[0].code == "console.log(1)"

    def test_invalid_rule_definition(self) -> None:
        with pytest.raises(InvalidConfigError) as exc:
            parse_settings({"rule_definitions": [{"name": "Bad Name"}]})
        assert exc.value.field_path == "rule_definitions.0.name"


class TestMergeSettings:
    def test_rules_merge_keywise(self) -> None:
        base = LinterSettings(rules={"a": "warn", "b": "error"})
        merged = merge_settings(base, {"rules": {"b": "off", "c": "warn"}})
        assert merged.rules == {"a": "warn", "b": "off", "c": "warn"} and base.rules == {"a": "warn", "b": "error"}

    def test_option_groups_merge_fieldwise(self) -> None:
        base = LinterSettings(linter_options=LinterOptions(concurrency=3))
        merged = merge_settings(base, {"linter_options": {"early_exit": True}})
        assert merged.linter_options.concurrency == 3 and merged.linter_options.early_exit
        assert not base.linter_options.early_exit

    def test_settings_override(self) -> None:
        base = LinterSettings(files=["**/*.py"], rules={"a": "warn"})
        merged = merge_settings(base, LinterSettings(files=["src/**/*.js"], rules={"b": "off"}))
        assert merged.files == ["src/**/*.js"] and merged.rules == {"a": "warn", "b": "off"}


class TestLoadSettings:
    def test_load_defaults_no_file(self, tmp_path) -> None:
        assert load_settings(search_dir=tmp_path).files == ["**/*.py"]

    def test_load_from_yaml(self, tmp_path) -> None:
        (tmp_path / "lintoracle.yaml").write_text(textwrap.dedent("""\
            files: ["src/**/*.js"]
            rules:
              no-console: warn
            linter_options:
              concurrency: 4
            llm_options:
              model: gpt-4o
        """))
        s = load_settings(search_dir=tmp_path)
        assert s.files == ["src/**/*.js"] and s.rules == {"no-console": "warn"}
        assert s.linter_options.concurrency == 4 and s.llm_options.model == "gpt-4o"

    def test_explicit_path_takes_precedence(self, tmp_path) -> None:
        (tmp_path / "lintoracle.yaml").write_text("files: ['a']\n")
        explicit = tmp_path / "custom.yaml"
        explicit.write_text("files: ['b']\n")
        assert load_settings(config_path=explicit, search_dir=tmp_path).files == ["b"]

    def test_empty_yaml_returns_defaults(self, tmp_path) -> None:
        (tmp_path / "lintoracle.yaml").write_text("")
        assert load_settings(search_dir=tmp_path).files == ["**/*.py"]

    def test_parent_dir_search(self, tmp_path) -> None:
        (tmp_path / ".lintoracle.yml").write_text("files: ['*.go']\n")
        child = tmp_path / "child" / "subdir"
        child.mkdir(parents=True)
        assert load_settings(search_dir=child).files == ["*.go"]

    def test_invalid_yaml_value(self, tmp_path) -> None:
        (tmp_path / "lintoracle.yaml").write_text("llm_options:\n  temperature: 5\n")
        with pytest.raises(InvalidConfigError) as exc:
            load_settings(search_dir=tmp_path)
        assert exc.value.field_path == "llm_options.temperature"
