"""StepGenerator — produces one structured reasoning step per call.

The reasoning service is asked for a JSON object (title, content, and a
``dharma`` self-evaluation block).  It does not always comply, so parsing is
tolerant: code fences are stripped, the outermost ``{...}`` span is extracted
from surrounding prose, and the result is validated.  Anything that fails
extraction or validation becomes a DEGRADED draft built from the raw text,
so the session always moves forward.

Exceptions raised by the service call itself are NOT handled here.  They
are fatal for the step and the controller decides what to do with them.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field, ValidationError

from dharma_reason.domain.dharma import DharmaEvaluation, render_definitions
from dharma_reason.domain.enums import StepSource
from dharma_reason.domain.step import StepDraft
from dharma_reason.services.llm import LLMFactory, LLMProfile, response_text, step_profile

logger = logging.getLogger(__name__)

DEGRADED_SCORE = 0.5
DEGRADED_RATIONALE = "Auto-generated (parsing failed)"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_SYSTEM_PROMPT = """You are an expert AI assistant that explains your reasoning step by step while cultivating contemplative wisdom.

Your task: Generate ONE reasoning step that explores a specific aspect of the problem.

CONTEMPLATIVE DHARMA PRINCIPLES:
For each reasoning step, you must evaluate four principles (0-1 scale):

{definitions}

Respond with a JSON object containing:
- title: A concise title for this reasoning step
- content: Your detailed reasoning (be thorough, show your work)
- dharma: Your self-evaluation of the four principles with rationale

Example:
{{
  "title": "Initial Analysis of Core Problem",
  "content": "Let me start by breaking down the key assumptions...",
  "dharma": {{
    "mindfulness": 0.8,
    "emptiness": 0.7,
    "nonDuality": 0.6,
    "boundlessCare": 0.7,
    "rationale": "I'm aware of my reasoning process and acknowledging limitations..."
  }}
}}"""

_STEP_INSTRUCTION = """Generate reasoning step {step_index} of {max_steps}.
Focus on ONE specific aspect, method, or perspective.
Be thorough in your analysis and evaluate your reasoning against the dharma principles."""

_FEEDBACK_INSTRUCTION = "\n\nIncorporate the server feedback from your previous step."


class _StepPayload(BaseModel):
    """Schema the service response must satisfy."""

    title: str = Field(..., min_length=1)
    content: str
    dharma: DharmaEvaluation

    model_config = {"str_strip_whitespace": True}


def feedback_note(step_index: int, feedback: str) -> AIMessage:
    """Attributed note carrying feedback about the previous step."""
    return AIMessage(content=f"[Server Feedback from Step {step_index - 1}]: {feedback}")


def build_step_messages(
    conversation: Sequence[BaseMessage],
    step_index: int,
    max_steps: int,
    injected_feedback: str | None = None,
) -> list[BaseMessage]:
    """Full request for step ``step_index``: system prompt, context, instruction.

    Feedback is only injected from the second step on, and always sits
    before the "generate step N" instruction.
    """
    messages: list[BaseMessage] = [
        SystemMessage(content=_SYSTEM_PROMPT.format(definitions=render_definitions())),
        *conversation,
    ]
    has_feedback = step_index > 1 and bool(injected_feedback)
    if has_feedback:
        messages.append(feedback_note(step_index, injected_feedback))

    instruction = _STEP_INSTRUCTION.format(step_index=step_index, max_steps=max_steps)
    if has_feedback:
        instruction += _FEEDBACK_INSTRUCTION
    messages.append(HumanMessage(content=instruction))
    return messages


def degraded_step(text: str, step_index: int) -> StepDraft:
    """Well-formed stand-in for a response that could not be parsed."""
    return StepDraft(
        title=f"Reasoning Step {step_index}",
        content=text,
        evaluation=DharmaEvaluation(
            mindfulness=DEGRADED_SCORE,
            emptiness=DEGRADED_SCORE,
            non_duality=DEGRADED_SCORE,
            boundless_care=DEGRADED_SCORE,
            rationale=DEGRADED_RATIONALE,
        ),
        source=StepSource.DEGRADED,
    )


def _strip_code_fences(text: str) -> str:
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        return "\n".join(lines).strip()
    return text


def parse_step_response(text: str, step_index: int) -> StepDraft:
    """Parse a service response into a draft, degrading on any failure."""
    cleaned = _strip_code_fences(text.strip())

    try:
        match = _JSON_OBJECT.search(cleaned)
        if match is None:
            raise ValueError("No JSON object found in response")
        payload = _StepPayload.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError, ValueError, TypeError, RecursionError) as exc:
        logger.warning("Failed to parse step %d response: %s, using degraded step", step_index, exc)
        return degraded_step(text, step_index)

    return StepDraft(
        title=payload.title,
        content=payload.content,
        evaluation=payload.dharma,
        source=StepSource.PARSED,
    )


class StepGenerator:
    """Requests one reasoning step from the reasoning service."""

    def __init__(self, llm_factory: LLMFactory, profile: LLMProfile | None = None) -> None:
        self._llm_factory = llm_factory
        self._profile = profile or step_profile()

    async def generate(
        self,
        conversation: Sequence[BaseMessage],
        step_index: int,
        max_steps: int,
        injected_feedback: str | None = None,
    ) -> StepDraft:
        """Generate step ``step_index``.  Service call errors propagate."""
        messages = build_step_messages(conversation, step_index, max_steps, injected_feedback)
        return await self.complete(messages, step_index)

    async def complete(self, messages: Sequence[BaseMessage], step_index: int) -> StepDraft:
        """Send an already-built step request and parse the response."""
        llm = self._llm_factory(self._profile)
        response = await llm.ainvoke(list(messages))
        text = response_text(response)
        logger.info("Step %d response length: %d chars", step_index, len(text))
        return parse_step_response(text, step_index)
