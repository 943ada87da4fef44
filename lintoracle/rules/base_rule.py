"""Rule record consumed by the linting pipeline."""

from __future__ import annotations

from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lintoracle.core.errors import InvalidConfigError
from lintoracle.rules.rule_utils import is_valid_rule_name

__all__ = ["RuleLevel", "RuleScope", "RuleExample", "Rule", "resolve_rules"]

RuleLevel = Literal["off", "warn", "error"]
RuleScope = Literal["file", "project", "repo"]


class RuleExample(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    language: Optional[str] = None


class Rule(BaseModel):
    """A natural-language rule judged by the oracle.

    The optional hooks customise the built-in pipeline for a single rule:

    * ``pre_process_file(file, rule, config)`` runs after the built-in checks;
      returning a ``LintResult`` settles the task without calling the oracle.
    * ``process_file(file, rule, config)`` replaces the oracle call entirely.
    * ``post_process_file(lint_result, file, rule, config)`` may rewrite the
      filtered result (for example to prune rule-specific false positives).
    * ``process_project(files, rule, config)`` handles project/repo scoped rules.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(description="Lowercase kebab-case identifier, optionally '@scope/name'.")
    title: str = Field(default="", description="Short human-readable title.")
    description: str = Field(default="", description="Longer description passed to the oracle.")
    positive_examples: list[RuleExample] = Field(default_factory=list)
    negative_examples: list[RuleExample] = Field(default_factory=list)
    level: RuleLevel = "error"
    scope: RuleScope = "file"
    languages: Optional[list[str]] = None
    model: Optional[str] = Field(default=None, description="Model override for this rule.")
    include: Optional[list[str]] = None
    exclude: Optional[list[str]] = None
    fixable: bool = False
    cacheable: bool = True
    tags: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    source: str = "config"
    gritql: Optional[str] = Field(default=None, description="GritQL pattern used to pre-filter files.")
    gritql_num_lines_context: int = 5

    pre_process_file: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    process_file: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    post_process_file: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    process_project: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not is_valid_rule_name(value):
            raise ValueError(f'invalid rule name "{value}"')
        return value

    @property
    def display_title(self) -> str:
        return self.title or self.name


def resolve_rules(definitions: list[Rule | dict[str, Any]]) -> list[Rule]:
    """Validate rule records and reject duplicate names."""
    rules: list[Rule] = []
    seen: set[str] = set()
    for idx, definition in enumerate(definitions):
        try:
            rule = definition if isinstance(definition, Rule) else Rule.model_validate(definition)
        except ValidationError as exc:
            raise InvalidConfigError(f"rule_definitions[{idx}]", str(exc)) from exc
        if rule.name in seen:
            raise InvalidConfigError(f"rule_definitions[{idx}].name", f'duplicate rule name "{rule.name}"')
        seen.add(rule.name)
        rules.append(rule)
    return rules
