"""Orchestration engine: drains lint tasks through the pipeline under a bounded pool."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from lintoracle.core.errors import AbortError, InvalidConfigError, TaskFailedError
from lintoracle.core.lint_file import lint_file
from lintoracle.core.lint_result import LintResult, create_lint_result, merge_lint_results, now_ms
from lintoracle.core.lint_task import LintTask, create_lint_tasks
from lintoracle.core.match_ranges import GritClient, GritError, PartialFile, resolve_grit_pattern
from lintoracle.core.pre_process import pre_process_task

if TYPE_CHECKING:
    from lintoracle.config.settings import LinterSettings
    from lintoracle.core.cache import LinterCache
    from lintoracle.core.oracle import Oracle
    from lintoracle.core.source_file import SourceFile
    from lintoracle.rules.base_rule import Rule

__all__ = ["LinterEngine", "LintReport"]

logger = logging.getLogger(__name__)


class LintReport:
    def __init__(self, result: LintResult, failures: list[TaskFailedError]) -> None:
        self.result = result
        self.failures = failures

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    @property
    def has_errors(self) -> bool:
        return self.result.has_errors

    @property
    def exit_code(self) -> int:
        if self.has_failures:
            return 2
        if self.has_errors:
            return 1
        return 0


class LinterEngine:
    """Runs lint tasks concurrently and merges their results.

    Each task goes through pre-processing, the oracle call with its parse
    retries, false-positive filtering and post-processing. Transient failures
    are retried per task up to ``max_task_retries`` times. A task that still
    fails is rejected with a :class:`TaskFailedError` while its siblings keep
    running, unless ``fail_fast`` is set. An :class:`AbortError` from any task
    cancels the run and propagates to the caller.
    """

    def __init__(
        self,
        settings: LinterSettings,
        oracle: Oracle,
        cache: LinterCache,
        grit_client: GritClient | None = None,
    ) -> None:
        self.settings = settings
        self.oracle = oracle
        self.cache = cache
        self.grit_client = grit_client
        self._merge_lock = threading.Lock()
        self._grit_lock = threading.Lock()
        self._early_exit = threading.Event()
        self._cancel_event = threading.Event()
        self._result = create_lint_result()
        self._files: list[SourceFile] = []
        self._rule_files: dict[str, list[SourceFile]] = {}
        self._partials: dict[str, Future[dict[str, PartialFile]]] = {}

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop scheduling new work; tasks in flight stop at their next oracle call."""
        self._cancel_event.set()

    def lint_files(self, files: list[SourceFile], rules: list[Rule]) -> LintReport:
        tasks = create_lint_tasks(rules, files, self.settings)
        logger.debug("Framed %d tasks from %d files and %d rules", len(tasks), len(files), len(rules))
        return self.run_report(tasks, files)

    def run(self, tasks: list[LintTask]) -> LintResult:
        return self.run_report(tasks).result

    def run_report(self, tasks: list[LintTask], files: list[SourceFile] | None = None) -> LintReport:
        """Run *tasks* and return the merged result with any failed tasks.

        *files* is the full file set handed to project-scoped rules; it defaults
        to the files referenced by *tasks*.
        """
        self._reset(tasks, files or [])
        options = self.settings.linter_options
        workers = 1 if options.debug else options.concurrency
        failures: list[TaskFailedError] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lintoracle") as pool:
            futures: dict[Future, LintTask] = {pool.submit(self._run_task, task): task for task in tasks}
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                exc = future.exception()
                if exc is None:
                    continue
                if isinstance(exc, AbortError):
                    self.cancel()
                    self._abandon_pending(futures)
                    raise exc
                if not isinstance(exc, TaskFailedError):
                    raise exc
                logger.error("%s", exc)
                failures.append(exc)
                if options.fail_fast:
                    self.cancel()
                    self._abandon_pending(futures)
                    raise exc

        if self.cancelled:
            self._abandon_pending(futures)
            raise AbortError("lint run was cancelled")

        self._result.ended_at_ms = now_ms()
        return LintReport(self._result, failures)

    def _reset(self, tasks: list[LintTask], files: list[SourceFile]) -> None:
        self._result = create_lint_result()
        self._early_exit.clear()
        self._cancel_event.clear()
        self._partials = {}
        self._rule_files = {}
        seen: dict[str, SourceFile] = {f.file_path: f for f in files}
        for task in tasks:
            if task.file is not None:
                seen.setdefault(task.file.file_path, task.file)
                self._rule_files.setdefault(task.rule.name, []).append(task.file)
        self._files = list(seen.values())

    def _abandon_pending(self, futures: dict[Future, LintTask]) -> None:
        for future, task in futures.items():
            if future.cancel() and not task.settled:
                task.reject(AbortError("lint run was cancelled"))

    def _run_task(self, task: LintTask) -> None:
        if self._early_exit.is_set():
            task.settle(create_lint_result(ended_at_ms=now_ms()))
            return
        try:
            if self.cancelled:
                raise AbortError("lint run was cancelled")
            result = self._process_task(task)
        except AbortError as exc:
            task.reject(exc)
            raise
        except Exception as exc:
            file_path = task.file.file_relative_path if task.file is not None else None
            error = TaskFailedError(task.rule.name, file_path, exc)
            task.reject(error)
            raise error from exc

        task.settle(result)
        with self._merge_lock:
            self._result = merge_lint_results(self._result, result)
            if self.settings.linter_options.early_exit and self._result.lint_errors:
                self._early_exit.set()

    def _process_task(self, task: LintTask) -> LintResult:
        processed = pre_process_task(task, self.cache, self._partial_files_for)
        if isinstance(processed, LintResult):
            logger.debug("Skipped %s (%s)", task.describe(), processed.skip_reason)
            return processed

        result = self._execute_with_retries(processed)
        if processed.file is not None and processed.rule.cacheable and not result.skipped:
            self.cache.set(processed.cache_key, result.to_cache_value())
        return result

    def _execute_with_retries(self, task: LintTask) -> LintResult:
        options = task.config.linter_options
        attempt = 0
        while True:
            try:
                return self._execute(task)
            except (AbortError, InvalidConfigError):
                raise
            except Exception as exc:
                attempt += 1
                if attempt > options.max_task_retries:
                    raise
                delay = options.retry_backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    task.describe(), attempt, options.max_task_retries + 1, delay, exc,
                )
                if self._cancel_event.wait(delay):
                    raise AbortError("lint run was cancelled") from exc

    def _execute(self, task: LintTask) -> LintResult:
        if task.file is not None:
            return lint_file(task.file, task.rule, self.oracle, task.config, self._cancel_event)

        rule = task.rule
        if rule.process_project is None:
            logger.warning('rule "%s" has scope "%s" but no process_project hook', rule.name, rule.scope)
            return create_lint_result(ended_at_ms=now_ms())
        result = rule.process_project(list(self._files), rule, task.config)
        if not isinstance(result, LintResult):
            result = create_lint_result()
        result.ended_at_ms = result.ended_at_ms or now_ms()
        return result

    def _partial_files_for(self, rule: Rule) -> dict[str, PartialFile]:
        # One grit run per rule; other rules resolve concurrently.
        with self._grit_lock:
            pending = self._partials.get(rule.name)
            owner = pending is None
            if owner:
                pending = self._partials[rule.name] = Future()
        if not owner:
            return pending.result()

        files = self._rule_files.get(rule.name, self._files)
        try:
            partials = resolve_grit_pattern(rule.gritql or "", files, rule.gritql_num_lines_context, self.grit_client)
        except GritError as exc:
            logger.warning('rule "%s" gritql pattern failed; linting full files: %s', rule.name, exc)
            partials = {}
        except Exception as exc:
            pending.set_exception(exc)
            raise
        pending.set_result(partials)
        return partials
