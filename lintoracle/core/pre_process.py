"""Cheap checks that settle a task before the oracle is consulted."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from lintoracle.config.settings import merge_settings
from lintoracle.core.inline_config import parse_inline_config
from lintoracle.core.lint_result import LintError, LintResult, SkipReason, create_lint_result, now_ms

if TYPE_CHECKING:
    from lintoracle.core.cache import LinterCache
    from lintoracle.core.lint_task import LintTask
    from lintoracle.core.match_ranges import PartialFile
    from lintoracle.rules.base_rule import Rule

__all__ = ["PartialFileResolver", "pre_process_task"]

logger = logging.getLogger(__name__)

PartialFileResolver = Callable[["Rule"], "dict[str, PartialFile]"]


def _skipped(reason: SkipReason, detail: str | None = None, **overrides: object) -> LintResult:
    return create_lint_result(skipped=True, skip_reason=reason, skip_detail=detail, ended_at_ms=now_ms(), **overrides)


def pre_process_task(
    task: LintTask,
    cache: LinterCache,
    partial_file_resolver: PartialFileResolver | None = None,
) -> LintTask | LintResult:
    """Return a settled ``LintResult`` or the (possibly amended) task.

    Checks run in order and stop at the first that applies: empty file, cache
    hit, inline directives, rule disabled, the rule's own ``pre_process_file``
    hook, and finally the GritQL pre-filter.
    """
    rule = task.rule
    file = task.file

    if file is not None:
        if not file.content.strip():
            return _skipped(SkipReason.EMPTY)

        if rule.cacheable:
            cached = cache.get(task.cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", task.describe())
                return _skipped(
                    SkipReason.CACHED,
                    lint_errors=[LintError.from_dict(e) for e in cached.get("lint_errors", [])],
                    message=cached.get("message"),
                    num_model_calls_cached=1,
                )

        if not task.config.linter_options.no_inline_config:
            override = parse_inline_config(file)
            if override is not None:
                if override.disabled:
                    if rule.cacheable:
                        cache.set(task.cache_key, create_lint_result().to_cache_value())
                    return _skipped(SkipReason.INLINE_DISABLED)
                task = task.with_config(merge_settings(task.config, {"rules": override.rules}))

    if task.config.rule_setting(rule) == "off":
        return _skipped(SkipReason.RULE_DISABLED)

    if file is not None and rule.pre_process_file is not None:
        custom = rule.pre_process_file(file, rule, task.config)
        if isinstance(custom, LintResult):
            custom.skipped = True
            custom.skip_reason = custom.skip_reason or SkipReason.CUSTOM
            custom.ended_at_ms = custom.ended_at_ms or now_ms()
            return custom

    if (
        file is not None
        and rule.gritql
        and partial_file_resolver is not None
        and not task.config.linter_options.no_grit
    ):
        partials = partial_file_resolver(rule)
        if partials:
            partial = partials.get(file.file_path)
            if partial is None or not partial.has_matches:
                return _skipped(SkipReason.GRIT_PATTERN, "no gritql matches")
            task = task.with_file(partial.to_source_file())

    return task
