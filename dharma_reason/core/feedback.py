"""FeedbackGenerator — targeted guidance for the next reasoning step.

The feedback service reads the current step's self-scores together with the
whole prior trajectory and writes two or three sentences of guidance.  That
text is injected into the next step's context; it never alters scores.

The generator has two explicit branches:

    SERVICE   — the reasoning service answered with non-empty text
    FALLBACK  — the call failed (factory, network, timeout, empty reply) and
                a deterministic rule-based message is returned instead

Failures never propagate to the caller, so the loop cannot stall on
feedback-service unavailability.

Usage:
    generator = FeedbackGenerator(llm_factory)
    result = await generator.generate(scores, prior_history, target=0.75)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Sequence

from langchain_core.messages import HumanMessage

from dharma_reason.core.scoring import aggregate
from dharma_reason.domain.dharma import DharmaScores, render_definitions
from dharma_reason.domain.enums import Dimension, FeedbackSource
from dharma_reason.domain.step import ScoreHistoryEntry
from dharma_reason.services.llm import LLMFactory, LLMProfile, feedback_profile, response_text

logger = logging.getLogger(__name__)

ALL_ALIGNED_MESSAGE = "Strong alignment across all principles. Maintain this contemplative depth."

_FALLBACK_SUGGESTIONS: dict[Dimension, str] = {
    Dimension.MINDFULNESS: "Strengthen mindfulness: explicitly note assumptions and limitations.",
    Dimension.EMPTINESS: "Strengthen emptiness: hold conclusions more lightly, acknowledge uncertainty.",
    Dimension.NON_DUALITY: "Strengthen non-duality: consider complementary perspectives and interconnections.",
    Dimension.BOUNDLESS_CARE: "Strengthen boundless care: expand consideration of all stakeholders and potential harms.",
}

_FEEDBACK_PROMPT = """You are a contemplative wisdom evaluator. Analyze this reasoning step's alignment with dharma principles.

PHILOSOPHICAL DEFINITIONS (use these, not keywords):

{definitions}

CURRENT STEP SELF-SCORES:
{current_scores}

SCORE HISTORY (trajectory across all {history_count} previous steps):
{history}

THRESHOLD TARGET: {target:.2f} (current: {current_mean:.2f})

ANALYSIS TASK:
1. Assess the score trajectory: Is reasoning moving toward the threshold {target}?
2. Identify which principle dimensions are weakest (below {target})
3. Provide specific, actionable feedback for the NEXT reasoning step
4. Reference the philosophical definitions, not just numeric scores
5. Be concise but targeted (2-3 sentences max)

Focus especially on dimensions scoring below {target}. If scores are stagnant, suggest new approaches.

FEEDBACK:"""


@dataclass(frozen=True)
class FeedbackResult:
    """Guidance text plus the branch that produced it."""

    text: str
    source: FeedbackSource

    @property
    def is_fallback(self) -> bool:
        return self.source is FeedbackSource.FALLBACK


def fallback_feedback(scores: DharmaScores, target: float) -> str:
    """Deterministic rule-based feedback from scores and target alone."""
    suggestions = [
        _FALLBACK_SUGGESTIONS[dimension]
        for dimension in Dimension
        if scores.value(dimension) < target
    ]
    if not suggestions:
        return ALL_ALIGNED_MESSAGE
    return " ".join(suggestions)


def format_history_line(entry: ScoreHistoryEntry) -> str:
    s = entry.scores
    return (
        f"Step {entry.step_index}: mean={entry.aggregate_mean:.3f} "
        f"[M:{s.mindfulness:.2f} E:{s.emptiness:.2f} "
        f"N:{s.non_duality:.2f} B:{s.boundless_care:.2f}]"
    )


def build_feedback_prompt(
    current: DharmaScores,
    prior_history: Sequence[ScoreHistoryEntry],
    target: float,
) -> str:
    """Assemble the feedback request text."""
    current_mean = aggregate(current)
    current_scores = {**current.model_dump(by_alias=True), "mean": current_mean}
    return _FEEDBACK_PROMPT.format(
        definitions=render_definitions(),
        current_scores=json.dumps(current_scores, indent=2),
        history_count=len(prior_history),
        history="\n".join(format_history_line(entry) for entry in prior_history),
        target=target,
        current_mean=current_mean,
    )


class FeedbackGenerator:
    """LLM-powered feedback with a visible deterministic fallback branch."""

    def __init__(self, llm_factory: LLMFactory, profile: LLMProfile | None = None) -> None:
        self._llm_factory = llm_factory
        self._profile = profile or feedback_profile()

    async def generate(
        self,
        current: DharmaScores,
        prior_history: Sequence[ScoreHistoryEntry],
        target: float,
    ) -> FeedbackResult:
        """Produce guidance for the next step.  Never raises."""
        try:
            text = await self._generate_with_llm(current, prior_history, target)
        except Exception as exc:
            logger.warning("Feedback generation failed: %s, using fallback", exc)
            return FeedbackResult(fallback_feedback(current, target), FeedbackSource.FALLBACK)
        return FeedbackResult(text, FeedbackSource.SERVICE)

    async def _generate_with_llm(
        self,
        current: DharmaScores,
        prior_history: Sequence[ScoreHistoryEntry],
        target: float,
    ) -> str:
        prompt = build_feedback_prompt(current, prior_history, target)
        llm = self._llm_factory(self._profile)
        response = await llm.ainvoke([HumanMessage(content=prompt)])
        text = response_text(response).strip()
        if not text:
            raise ValueError("Feedback service returned an empty response")
        logger.debug("Feedback response length: %d chars", len(text))
        return text
