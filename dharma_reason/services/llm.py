"""Reasoning-service seam — everything the core needs to talk to a chat model.

The core never constructs a model directly.  It receives an ``LLMFactory``
and asks it for a model configured with a call profile (temperature and
output budget).  Tests inject scripted fakes through the same seam.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from dharma_reason.config import settings
from dharma_reason.models.chat import ChatMessage, Role


@dataclass(frozen=True)
class LLMProfile:
    """Generation settings for one kind of call."""

    temperature: float | None = None
    max_output_tokens: int | None = None


# Returns a langchain BaseChatModel configured for the given profile
LLMFactory = Callable[[LLMProfile], Any]


def step_profile() -> LLMProfile:
    return LLMProfile(settings.step_temperature, settings.step_max_output_tokens)


def feedback_profile() -> LLMProfile:
    return LLMProfile(settings.feedback_temperature, settings.feedback_max_output_tokens)


def synthesis_profile() -> LLMProfile:
    return LLMProfile(settings.synthesis_temperature, settings.synthesis_max_output_tokens)


def default_llm_factory(profile: LLMProfile):
    """Create a Gemini Flash instance from environment config."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    api_key = os.environ.get("GOOGLE_API_KEY") or os.environ.get("DHARMA_GEMINI_API_KEY")
    if not api_key:
        raise RuntimeError(
            "Gemini API key not found. Set GOOGLE_API_KEY or DHARMA_GEMINI_API_KEY "
            "in your environment variables."
        )

    kwargs: dict[str, Any] = {}
    if profile.temperature is not None:
        kwargs["temperature"] = profile.temperature
    if profile.max_output_tokens is not None:
        kwargs["max_output_tokens"] = profile.max_output_tokens

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=api_key,
        **kwargs,
    )


def to_langchain_messages(messages: Iterable[ChatMessage]) -> list[BaseMessage]:
    """Convert inbound role/content messages to LangChain message objects."""
    converted: list[BaseMessage] = []
    for message in messages:
        if message.role is Role.SYSTEM:
            converted.append(SystemMessage(content=message.content))
        elif message.role is Role.ASSISTANT:
            converted.append(AIMessage(content=message.content))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


def response_text(response: Any) -> str:
    """Extract plain text from a chat model response.

    Some providers return content as a list of parts; text parts are joined.
    """
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content)
