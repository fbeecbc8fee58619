"""Reasoning step models — the unit of work in a reasoning session.

A StepDraft is what the step generator hands back: either a validated
structured step or a degraded variant built from raw text.  The tag
(StepSource) keeps the degraded branch explicit while both variants satisfy
the same downstream contract.

A ReasoningStep is the immutable record the controller creates once per
iteration, after scoring, feedback, and the termination decision exist.

A ScoreHistoryEntry is the lightweight projection of a completed step used
only as trajectory context for feedback generation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dharma_reason.domain.dharma import DharmaEvaluation, DharmaScores
from dharma_reason.domain.enums import (
    FeedbackSource,
    NextStep,
    StepSource,
    TerminationReason,
)


class StepDraft(BaseModel):
    """Step generator output before the controller enriches it."""

    title: str = Field(..., min_length=1)
    content: str
    evaluation: DharmaEvaluation
    source: StepSource = StepSource.PARSED

    model_config = {"frozen": True}

    @property
    def degraded(self) -> bool:
        return self.source is StepSource.DEGRADED


class ReasoningStep(BaseModel):
    """One completed reasoning step, as recorded and streamed by the controller."""

    title: str = Field(..., min_length=1)
    content: str
    scores: DharmaScores
    rationale: str
    step_index: int = Field(..., ge=1, description="1-based position in the session")
    max_steps: int = Field(..., ge=1, description="Session ceiling, constant per session")
    aggregate: float = Field(..., ge=0.0, le=1.0)
    feedback: str | None = Field(
        default=None,
        description="Guidance generated about this step; consumed by the next step",
    )
    feedback_source: FeedbackSource | None = None
    next_step: NextStep
    termination_reason: TerminationReason
    source: StepSource = StepSource.PARSED

    model_config = {"frozen": True}


class ScoreHistoryEntry(BaseModel):
    """Trajectory context for the feedback generator."""

    step_index: int = Field(..., ge=1)
    scores: DharmaScores
    aggregate_mean: float
    content: str

    model_config = {"frozen": True}
