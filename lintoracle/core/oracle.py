"""The oracle: an external, fallible chat model that judges rule conformance."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

if TYPE_CHECKING:
    from lintoracle.config.settings import LLMOptions

__all__ = ["ChatMessage", "OracleUsage", "OracleResponse", "Oracle", "LangChainOracle", "create_oracle"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: Literal["system", "user", "assistant"]
    content: str

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls("assistant", content)


@dataclass(frozen=True)
class OracleUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class OracleResponse:
    text: str
    usage: OracleUsage = field(default_factory=OracleUsage)
    cost: float = 0.0
    cached: bool = False


class Oracle(ABC):
    @abstractmethod
    def invoke(self, messages: list[ChatMessage], *, model: str | None = None) -> OracleResponse:
        """Send the conversation and return the model's reply."""


class LangChainOracle(Oracle):
    """Adapter over any LangChain chat model."""

    def __init__(self, chat_model: Any) -> None:
        self._message_types = {"system": SystemMessage, "user": HumanMessage, "assistant": AIMessage}
        self._chat_model = chat_model

    def _to_langchain(self, messages: list[ChatMessage]) -> list[Any]:
        return [self._message_types[m.role](content=m.content) for m in messages]

    def invoke(self, messages: list[ChatMessage], *, model: str | None = None) -> OracleResponse:
        kwargs: dict[str, Any] = {"model": model} if model else {}
        response = self._chat_model.invoke(self._to_langchain(messages), **kwargs)
        content = getattr(response, "content", "") or ""
        if isinstance(content, list):
            content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
        usage_metadata = getattr(response, "usage_metadata", None) or {}
        usage = OracleUsage(
            prompt_tokens=int(usage_metadata.get("input_tokens", 0)),
            completion_tokens=int(usage_metadata.get("output_tokens", 0)),
            total_tokens=int(usage_metadata.get("total_tokens", 0)),
        )
        return OracleResponse(text=content, usage=usage)


def create_oracle(options: LLMOptions) -> LangChainOracle:
    """Build the default OpenAI-compatible oracle from ``llm_options``."""
    try:
        from langchain_openai import ChatOpenAI
    except ImportError as exc:
        raise RuntimeError("langchain-openai is not installed") from exc
    logger.debug("Creating ChatOpenAI oracle model=%s base_url=%s", options.model, options.api_base_url)
    chat_model = ChatOpenAI(
        model=options.model,
        temperature=options.temperature,
        base_url=options.api_base_url,
        api_key=options.api_key,
    )
    return LangChainOracle(chat_model)
