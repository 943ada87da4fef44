"""Pydantic-based configuration model and YAML loader for lintoracle."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from lintoracle.core.errors import InvalidConfigError
from lintoracle.rules.base_rule import Rule
from lintoracle.rules.rule_utils import is_valid_rule_name

__all__ = [
    "RuleSetting",
    "LinterOptions",
    "LLMOptions",
    "LinterSettings",
    "load_settings",
    "merge_settings",
    "parse_settings",
]

RuleSetting = Literal["off", "warn", "error"]

_CONFIG_FILE_NAMES: list[str] = [
    "lintoracle.yaml",
    "lintoracle.yml",
    ".lintoracle.yaml",
    ".lintoracle.yml",
]

DEFAULT_CACHE_DIR = ".lintoracle-cache"


class LinterOptions(BaseModel):
    """Settings related to the linting process itself."""

    no_inline_config: bool = Field(
        default=False,
        description="Ignore lintoracle directives embedded in source files.",
    )
    early_exit: bool = Field(
        default=False,
        description="Stop scheduling new tasks once the first violation is found.",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging and run tasks one at a time.",
    )
    no_cache: bool = Field(
        default=False,
        description="Keep the verdict cache in memory only.",
    )
    cache_dir: str = Field(
        default=DEFAULT_CACHE_DIR,
        description="Directory holding the persisted verdict cache.",
    )
    concurrency: int = Field(
        default=16,
        ge=1,
        description="Maximum number of tasks in flight.",
    )
    fail_fast: bool = Field(
        default=False,
        description="Abort the whole run on the first failed task.",
    )
    max_output_retries: int = Field(
        default=2,
        ge=0,
        description="Corrective re-prompts allowed for a malformed oracle reply.",
    )
    max_task_retries: int = Field(
        default=2,
        ge=0,
        description="Task-level retries for transport and cache failures.",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay between task-level retries (doubled each time).",
    )
    no_grit: bool = Field(
        default=False,
        description="Ignore GritQL pre-filter patterns attached to rules.",
    )


class LLMOptions(BaseModel):
    """How the oracle model is parameterized."""

    model: str = Field(default="gpt-4o-mini", description="Model used to judge rule conformance.")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature.")
    api_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL.")
    api_key: Optional[str] = Field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY"),
        description="API key; defaults to the OPENAI_API_KEY environment variable.",
        repr=False,
    )


class LinterSettings(BaseModel):
    """Top-level lintoracle configuration."""

    files: list[str] = Field(
        default_factory=lambda: ["**/*.py"],
        description="Glob patterns of source files to lint.",
    )
    ignores: list[str] = Field(
        default_factory=list,
        description="Glob patterns of source files to skip.",
    )
    rules: dict[str, RuleSetting] = Field(
        default_factory=dict,
        description="Per-rule severity overrides.",
    )
    rule_definitions: list[Rule] = Field(
        default_factory=list,
        description="Rules defined inline in the config file.",
    )
    linter_options: LinterOptions = Field(default_factory=LinterOptions)
    llm_options: LLMOptions = Field(default_factory=LLMOptions)

    @field_validator("rules")
    @classmethod
    def _validate_rule_names(cls, value: dict[str, str]) -> dict[str, str]:
        for name in value:
            if not is_valid_rule_name(name):
                raise ValueError(f'invalid rule name "{name}"')
        return value

    def rule_setting(self, rule: Rule) -> RuleSetting:
        return self.rules.get(rule.name, rule.level)


def _field_path(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "<root>"
    return ".".join(str(part) for part in errors[0]["loc"]) or "<root>"


def parse_settings(raw: dict[str, Any]) -> LinterSettings:
    try:
        return LinterSettings(**raw)
    except ValidationError as exc:
        raise InvalidConfigError(_field_path(exc), exc.errors()[0]["msg"]) from exc


def merge_settings(base: LinterSettings, override: LinterSettings | dict[str, Any]) -> LinterSettings:
    """Return a copy of *base* with *override* applied; the override wins per key."""
    if isinstance(override, LinterSettings):
        data = override.model_dump(exclude_unset=True)
    else:
        data = dict(override)
    update: dict[str, Any] = {}
    if "rules" in data:
        update["rules"] = {**base.rules, **data.pop("rules")}
    if "linter_options" in data:
        update["linter_options"] = base.linter_options.model_copy(update=data.pop("linter_options"))
    if "llm_options" in data:
        update["llm_options"] = base.llm_options.model_copy(update=data.pop("llm_options"))
    update.update(data)
    return base.model_copy(update=update)


def _find_config_file(search_dir: Path) -> Path | None:
    """Walk up from *search_dir* looking for a config file."""
    current = search_dir.resolve()
    while True:
        for name in _CONFIG_FILE_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_settings(
    config_path: Path | None = None,
    search_dir: Path | None = None,
) -> LinterSettings:
    """Load settings from a YAML file, falling back to defaults."""
    raw: dict[str, Any] = {}

    if config_path is not None:
        resolved = Path(config_path).resolve()
        if resolved.is_file():
            raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
    else:
        found = _find_config_file(search_dir or Path.cwd())
        if found is not None:
            raw = yaml.safe_load(found.read_text(encoding="utf-8")) or {}

    return parse_settings(raw)
