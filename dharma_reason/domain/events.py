"""Stream events — what a session emits to the presentation layer.

Exactly two kinds exist:

    reasoning-step  — once per completed iteration, in iteration order
    text            — once, after the loop, carrying the final answer

Each event renders a JSON payload ``{"type": kind, "content": ...}``.  The
step payload carries the display fields the UI renders on a step card.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel

from dharma_reason.core.scoring import format_aggregate, format_breakdown
from dharma_reason.domain.enums import StepSource
from dharma_reason.domain.step import ReasoningStep

REASONING_STEP = "reasoning-step"
TEXT = "text"


def step_display(step: ReasoningStep) -> dict[str, Any]:
    """Display projection of a step (external camelCase field names)."""
    return {
        "title": step.title,
        "content": step.content,
        "dharma": {
            **step.scores.model_dump(by_alias=True),
            "rationale": step.rationale,
        },
        "dharmaScore": format_aggregate(step.aggregate),
        "dharmaBreakdown": format_breakdown(step.scores),
        "stepIndex": step.step_index,
        "maxSteps": step.max_steps,
        "serverFeedback": step.feedback,
        "nextStep": step.next_step.value,
        "terminationReason": step.termination_reason.value,
        "degraded": step.source is StepSource.DEGRADED,
    }


class ReasoningStepEvent(BaseModel):
    kind: Literal["reasoning-step"] = REASONING_STEP
    step: ReasoningStep

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.kind, "content": step_display(self.step)}


class TextEvent(BaseModel):
    kind: Literal["text"] = TEXT
    content: str

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.kind, "content": self.content}


StreamEvent = Union[ReasoningStepEvent, TextEvent]
