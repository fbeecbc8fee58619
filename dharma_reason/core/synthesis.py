"""Synthesizer — turns the recorded reasoning steps into the final answer."""

from __future__ import annotations

import logging
from typing import Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from dharma_reason.domain.step import ReasoningStep
from dharma_reason.services.llm import LLMFactory, LLMProfile, response_text, synthesis_profile

logger = logging.getLogger(__name__)

SYNTHESIS_FAILURE_MESSAGE = (
    "Error generating final synthesis. Please review the reasoning steps above."
)

_SYNTHESIS_PROMPT = """You have completed {step_count} reasoning steps:

{transcript}

Now provide a clear, concise final answer that synthesizes all of your reasoning.
Be direct and actionable. This is your final response to the user."""

_SYNTHESIS_REQUEST = "Please provide your final synthesized answer based on all reasoning steps."


def build_transcript(steps: Sequence[ReasoningStep]) -> str:
    """Title and content of every recorded step, in order."""
    return "\n\n".join(
        f"Step {number}: {step.title}\n{step.content}"
        for number, step in enumerate(steps, start=1)
    )


def build_synthesis_messages(
    conversation: Sequence[BaseMessage],
    steps: Sequence[ReasoningStep],
) -> list[BaseMessage]:
    prompt = _SYNTHESIS_PROMPT.format(
        step_count=len(steps),
        transcript=build_transcript(steps),
    )
    return [
        *conversation,
        AIMessage(content=prompt),
        HumanMessage(content=_SYNTHESIS_REQUEST),
    ]


class Synthesizer:
    """One final generation call over the whole transcript.

    Falls back to a fixed diagnostic message on failure so the session
    always completes with a text answer.
    """

    def __init__(self, llm_factory: LLMFactory, profile: LLMProfile | None = None) -> None:
        self._llm_factory = llm_factory
        self._profile = profile or synthesis_profile()

    async def synthesize(
        self,
        conversation: Sequence[BaseMessage],
        steps: Sequence[ReasoningStep],
    ) -> str:
        try:
            llm = self._llm_factory(self._profile)
            response = await llm.ainvoke(build_synthesis_messages(conversation, steps))
            answer = response_text(response).strip()
            if not answer:
                raise ValueError("Synthesis returned an empty response")
            return answer
        except Exception as exc:
            logger.error("Error generating synthesis: %s", exc)
            return SYNTHESIS_FAILURE_MESSAGE
