"""Lint tasks: one unit of work binding a file (or the project) to a rule."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Union

from lintoracle.core.cache import create_task_cache_key
from lintoracle.core.source_file import SourceFile, matches_any

if TYPE_CHECKING:
    from lintoracle.config.settings import LinterSettings
    from lintoracle.core.lint_result import LintResult
    from lintoracle.rules.base_rule import Rule

__all__ = [
    "FileScope",
    "ProjectScope",
    "TaskScope",
    "LintTask",
    "create_lint_task",
    "create_lint_tasks",
    "rule_applies_to_file",
]


@dataclass(frozen=True)
class FileScope:
    file: SourceFile
    kind: str = field(default="file", init=False)


@dataclass(frozen=True)
class ProjectScope:
    name: str = "project"
    kind: str = field(default="project", init=False)


TaskScope = Union[FileScope, ProjectScope]


@dataclass
class LintTask:
    scope: TaskScope
    rule: Rule
    config: LinterSettings
    cache_key: str
    outcome: Future = field(default_factory=Future, repr=False, compare=False)

    @property
    def file(self) -> SourceFile | None:
        return self.scope.file if isinstance(self.scope, FileScope) else None

    @property
    def group(self) -> str:
        """Relative file path for file tasks, scope name for project tasks."""
        if isinstance(self.scope, FileScope):
            return self.scope.file.file_relative_path
        return self.scope.name

    @property
    def settled(self) -> bool:
        return self.outcome.done()

    def settle(self, result: LintResult) -> None:
        self.outcome.set_result(result)

    def reject(self, error: BaseException) -> None:
        self.outcome.set_exception(error)

    def with_config(self, config: LinterSettings) -> LintTask:
        return replace(self, config=config)

    def with_file(self, file: SourceFile) -> LintTask:
        return replace(self, scope=FileScope(file))

    def describe(self) -> str:
        if self.file is not None:
            return f'rule "{self.rule.name}" file "{self.file.file_relative_path}"'
        return f'rule "{self.rule.name}" {self.scope.name}'


def create_lint_task(rule: Rule, file: SourceFile | None, config: LinterSettings) -> LintTask:
    """Frame one task; the cache key is computed up front."""
    if rule.scope == "file":
        if file is None:
            raise ValueError(f'file-scoped rule "{rule.name}" requires a file')
        scope: TaskScope = FileScope(file)
        key_file = file
    else:
        scope = ProjectScope(rule.scope)
        key_file = None
    return LintTask(scope=scope, rule=rule, config=config, cache_key=create_task_cache_key(key_file, rule, config))


def rule_applies_to_file(rule: Rule, file: SourceFile) -> bool:
    if rule.languages and file.language not in rule.languages:
        return False
    if rule.include and not matches_any(file.file_relative_path, rule.include):
        return False
    if rule.exclude and matches_any(file.file_relative_path, rule.exclude):
        return False
    return True


def create_lint_tasks(rules: list[Rule], files: list[SourceFile], config: LinterSettings) -> list[LintTask]:
    tasks: list[LintTask] = []
    for rule in rules:
        if rule.scope == "file":
            tasks.extend(create_lint_task(rule, f, config) for f in files if rule_applies_to_file(rule, f))
        else:
            tasks.append(create_lint_task(rule, None, config))
    return tasks
