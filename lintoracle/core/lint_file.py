"""Run a single file/rule pair against the oracle."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from lintoracle.core.errors import AbortError, RetryableError
from lintoracle.core.false_positives import filter_rule_violations
from lintoracle.core.lint_result import LintResult, create_lint_result, now_ms
from lintoracle.core.oracle import ChatMessage
from lintoracle.core.prompts import build_lint_messages, build_retry_message
from lintoracle.core.rule_violations import parse_rule_violations_from_model_response

if TYPE_CHECKING:
    from lintoracle.config.settings import LinterSettings
    from lintoracle.core.oracle import Oracle, OracleResponse
    from lintoracle.core.source_file import SourceFile
    from lintoracle.rules.base_rule import Rule

__all__ = ["lint_file"]

logger = logging.getLogger(__name__)


def _record_usage(result: LintResult, response: OracleResponse) -> None:
    if response.cached:
        result.num_model_calls_cached += 1
    else:
        result.num_model_calls += 1
    result.num_prompt_tokens += response.usage.prompt_tokens
    result.num_completion_tokens += response.usage.completion_tokens
    result.num_total_tokens += response.usage.total_tokens
    result.total_cost += response.cost


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AbortError("lint run was cancelled")


def lint_file(
    file: SourceFile,
    rule: Rule,
    oracle: Oracle,
    config: LinterSettings,
    cancel_event: threading.Event | None = None,
) -> LintResult:
    """Judge *file* against *rule* and return the filtered result.

    A malformed reply is answered with a corrective message and the oracle is
    asked again, up to ``max_output_retries`` extra attempts. Usage is summed
    over every attempt. Any other exception propagates to the caller.
    """
    result = create_lint_result()
    model = rule.model or config.llm_options.model
    level = config.rule_setting(rule)

    if rule.process_file is not None:
        custom = rule.process_file(file, rule, config)
        if isinstance(custom, LintResult):
            result = custom
    else:
        messages: list[ChatMessage] = build_lint_messages(file, rule)
        max_attempts = config.linter_options.max_output_retries + 1
        attempt = 0
        while True:
            _check_cancelled(cancel_event)
            attempt += 1
            logger.debug("Oracle call %d/%d for rule %s on %s", attempt, max_attempts, rule.name, file.file_relative_path)
            response = oracle.invoke(messages, model=model)
            _record_usage(result, response)
            try:
                violations = parse_rule_violations_from_model_response(response.text)
            except RetryableError as exc:
                if attempt >= max_attempts:
                    raise
                logger.debug("Retrying rule %s on %s: %s", rule.name, file.file_relative_path, exc)
                messages = [*messages, ChatMessage.assistant(response.text), build_retry_message(exc)]
                continue
            result.lint_errors = filter_rule_violations(violations, file, rule, model=model, level=level)
            break

    if rule.post_process_file is not None:
        amended = rule.post_process_file(result, file, rule, config)
        if isinstance(amended, LintResult):
            result = amended

    result.ended_at_ms = now_ms()
    return result
