"""Error taxonomy for the lintoracle pipeline."""

from __future__ import annotations

__all__ = [
    "LinterError",
    "InvalidConfigError",
    "InlineConfigError",
    "RetryableError",
    "OutputParseError",
    "AbortError",
    "TaskFailedError",
]


class LinterError(Exception):
    """Base class for every error raised by lintoracle itself."""


class InvalidConfigError(LinterError):
    def __init__(self, field_path: str, message: str) -> None:
        self.field_path = field_path
        super().__init__(f"Invalid config at '{field_path}': {message}")


class InlineConfigError(InvalidConfigError):
    def __init__(self, file_path: str, directive: str, message: str) -> None:
        self.file_path = file_path
        self.directive = directive
        super().__init__(file_path, f'inline directive "{directive}": {message}')


class RetryableError(LinterError):
    """The oracle reply can be fixed by asking again with this message."""


class OutputParseError(RetryableError):
    pass


class AbortError(LinterError):
    """Explicit cancellation. Never retried."""


class TaskFailedError(LinterError):
    def __init__(self, rule_name: str, file_path: str | None, cause: BaseException) -> None:
        self.rule_name = rule_name
        self.file_path = file_path
        self.cause = cause
        target = f'file "{file_path}"' if file_path else "project"
        super().__init__(f'rule "{rule_name}" {target} unexpected error: {cause}')
