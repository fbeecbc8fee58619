"""SessionState — the sole state object that LangGraph nodes read and write.

This TypedDict defines the contract for the reasoning graph.  Every node
receives the full state and returns a partial update.  The state is
request-scoped: it is seeded when a session starts and discarded when the
session's response completes.  No node touches anything outside it apart
from the reasoning-service calls.
"""

from __future__ import annotations

from typing import TypedDict

from langchain_core.messages import BaseMessage

from dharma_reason.core.feedback import FeedbackResult
from dharma_reason.core.termination import TerminationDecision
from dharma_reason.domain.step import ReasoningStep, ScoreHistoryEntry, StepDraft


class SessionState(TypedDict, total=False):
    """LangGraph state for the reasoning loop.

    Fields:
        run_id: Identifier of this session (telemetry correlation).
        conversation: Seed conversation as LangChain messages.
        target: Aggregate-score threshold for early stop.
        max_steps: Absolute ceiling on generated steps.
        minimum_steps: Floor below which the loop always continues.
        step_index: 1-based index of the step in progress (0 before the first).
        steps: Completed ReasoningSteps, in order.
        score_history: One ScoreHistoryEntry per completed step, in order.
        previous_feedback: Feedback about the latest completed step.

    Per-iteration working values:
        context: Messages for the step in progress (feedback already injected).
        draft: Step generator output for the step in progress.
        current_aggregate: Aggregate score of the draft.
        feedback: Feedback generated for the draft.
        decision: Termination decision for the step in progress.
        step_started_at: Monotonic ms at which the iteration started.

    Exit:
        aborted: True when a fatal per-step error ended the loop.
        abort_reason: Error description for the abort.
        answer: Final synthesized answer (or the fixed diagnostic).
    """

    run_id: str
    conversation: list[BaseMessage]
    target: float
    max_steps: int
    minimum_steps: int

    step_index: int
    steps: list[ReasoningStep]
    score_history: list[ScoreHistoryEntry]
    previous_feedback: str | None

    context: list[BaseMessage]
    draft: StepDraft | None
    current_aggregate: float
    feedback: FeedbackResult | None
    decision: TerminationDecision | None
    step_started_at: float

    aborted: bool
    abort_reason: str | None
    answer: str | None
