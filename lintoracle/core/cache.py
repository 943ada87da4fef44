"""Content-addressed verdict cache."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from lintoracle.core.errors import InvalidConfigError

if TYPE_CHECKING:
    from lintoracle.config.settings import LinterSettings
    from lintoracle.core.source_file import SourceFile
    from lintoracle.rules.base_rule import Rule

__all__ = ["canonicalize", "create_cache_key", "create_task_cache_key", "LinterCache"]

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = "cache.json"

_RULE_CACHE_FIELDS = (
    "name", "title", "description", "positive_examples", "negative_examples", "languages", "gritql",
)
_LLM_CACHE_FIELDS = ("model", "temperature", "api_base_url")


def canonicalize(obj: Any) -> str:
    """Serialize with object keys sorted at every depth; list order is kept."""
    return json.dumps(obj, sort_keys=True, ensure_ascii=True, separators=(",", ":"), default=str)


def create_cache_key(obj: Any) -> str:
    return hashlib.sha256(canonicalize(obj).encode("utf-8")).hexdigest()


def _prune_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def create_task_cache_key(file: SourceFile | None, rule: Rule, settings: LinterSettings) -> str:
    """Derive the key from only those inputs that change the oracle's verdict."""
    rule_data = rule.model_dump(include=set(_RULE_CACHE_FIELDS))
    llm_data = settings.llm_options.model_dump(include=set(_LLM_CACHE_FIELDS))
    if rule.model:
        llm_data["model"] = rule.model
    source: dict[str, Any] = {
        "scope": rule.scope,
        "rule": _prune_none(rule_data),
        "llm_options": _prune_none(llm_data),
    }
    if file is not None:
        source["file"] = _prune_none({
            "file_relative_path": file.file_relative_path,
            "content": file.content,
            "language": file.language,
        })
    return create_cache_key(source)


class LinterCache:
    """Thread-safe key/value store persisted as a JSON file.

    With ``no_cache`` (or no ``cache_dir``) values live for the lifetime of the
    process only. Call :meth:`init` before use and :meth:`close` (or use the
    instance as a context manager) to flush pending writes.
    """

    def __init__(self, cache_dir: Path | str | None = None, *, no_cache: bool = False,
                 cache_file_name: str = CACHE_FILE_NAME) -> None:
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.no_cache = no_cache
        self.cache_file = self.cache_dir / cache_file_name if self.cache_dir else None
        self._lock = threading.Lock()
        self._cache: dict[str, str] | None = None
        self._dirty = False

    @property
    def persistent(self) -> bool:
        return self.cache_file is not None and not self.no_cache

    def init(self) -> LinterCache:
        with self._lock:
            if self._cache is not None:
                return self
            self._cache = {}
            if self.persistent and self.cache_file.exists():
                try:
                    self._cache = json.loads(self.cache_file.read_text(encoding="utf-8"))
                except json.JSONDecodeError as exc:
                    raise InvalidConfigError("linter_options.cache_dir", f"corrupt cache file {self.cache_file}: {exc}") from exc
            logger.debug("Cache initialised with %d entries (persistent=%s)", len(self._cache), self.persistent)
        return self

    def _require(self) -> dict[str, str]:
        if self._cache is None:
            raise RuntimeError("LinterCache.init() must be called before use")
        return self._cache

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            encoded = self._require().get(key)
        if encoded is None:
            return None
        return json.loads(encoded)

    def set(self, key: str, value: dict[str, Any]) -> None:
        encoded = json.dumps(value, ensure_ascii=True)
        with self._lock:
            self._require()[key] = encoded
            self._dirty = True

    def flush(self) -> None:
        with self._lock:
            if self._cache is None or not self._dirty or not self.persistent:
                return
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache_file.write_text(json.dumps(self._cache, sort_keys=True), encoding="utf-8")
            self._dirty = False
            logger.debug("Flushed %d cache entries to %s", len(self._cache), self.cache_file)

    def close(self) -> None:
        self.flush()
        with self._lock:
            self._cache = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache or {})

    def __enter__(self) -> LinterCache:
        return self.init()

    def __exit__(self, *exc_info: object) -> None:
        self.close()
