"""Shared pytest fixtures for the lintoracle test suite."""

from __future__ import annotations

import textwrap
import threading
from pathlib import Path
from typing import Iterator

import pytest

from lintoracle.config.settings import LinterOptions, LinterSettings
from lintoracle.core.cache import LinterCache
from lintoracle.core.oracle import ChatMessage, Oracle, OracleResponse, OracleUsage
from lintoracle.core.source_file import SourceFile
from lintoracle.rules.base_rule import Rule, RuleExample

APP_JS = textwrap.dedent("""\
    function main() {
      console.log('x')
      return 1
    }
""")

VIOLATION_REPLY = textwrap.dedent("""\
    # EXPLANATION

    The SOURCE logs to the console inside `main`, which the RULE forbids.

    # VIOLATIONS

    ```json
    [
      {
        "ruleName": "no-console",
        "codeSnippet": "console.log('x')",
        "codeSnippetSource": "source",
        "reasoning": "console.log is used for debugging output.",
        "violation": true,
        "confidence": "high"
      }
    ]
    ```
""")

CLEAN_REPLY = textwrap.dedent("""\
    # EXPLANATION

    Nothing in the SOURCE writes to the console.

    # VIOLATIONS

    ```json
    []
    ```
""")

MALFORMED_REPLY = "I looked at the file and it seems fine to me."


class FakeOracle(Oracle):
    """Replays scripted replies in order; the last one repeats forever.

    A scripted item that is an exception instance is raised instead of returned.
    """

    def __init__(self, *replies: str | BaseException, usage: OracleUsage | None = None) -> None:
        self.replies = list(replies) or [CLEAN_REPLY]
        self.usage = usage or OracleUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        self.calls: list[list[ChatMessage]] = []
        self.models: list[str | None] = []
        self._lock = threading.Lock()

    def invoke(self, messages: list[ChatMessage], *, model: str | None = None) -> OracleResponse:
        with self._lock:
            index = min(len(self.calls), len(self.replies) - 1)
            self.calls.append(list(messages))
            self.models.append(model)
            reply = self.replies[index]
        if isinstance(reply, BaseException):
            raise reply
        return OracleResponse(text=reply, usage=self.usage, cost=0.001)


def make_source_file(relative_path: str = "src/app.js", content: str = APP_JS, language: str = "javascript") -> SourceFile:
    return SourceFile(
        file_path=f"/project/{relative_path}",
        file_relative_path=relative_path,
        file_name=Path(relative_path).name,
        content=content,
        language=language,
    )


@pytest.fixture
def no_console_rule() -> Rule:
    return Rule(
        name="no-console",
        title="Don't use console.log",
        description="Debug logging should not be committed to source code.",
        negative_examples=[RuleExample(code="console.log('debug', value)", language="javascript")],
        positive_examples=[RuleExample(code="logger.info('started')", language="javascript")],
    )


@pytest.fixture
def app_file() -> SourceFile:
    return make_source_file()


@pytest.fixture
def settings() -> LinterSettings:
    return LinterSettings(linter_options=LinterOptions(concurrency=4, retry_backoff_seconds=0.0))


@pytest.fixture
def memory_cache() -> Iterator[LinterCache]:
    cache = LinterCache(no_cache=True).init()
    yield cache
    cache.close()


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle(VIOLATION_REPLY)
