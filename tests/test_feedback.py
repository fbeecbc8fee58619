"""Tests for the FeedbackGenerator: prompt content, service branch, fallback branch.

The reasoning service is scripted at the ainvoke level: production uses
real Gemini Flash.
"""

from __future__ import annotations

import pytest

from dharma_reason.core.feedback import (
    ALL_ALIGNED_MESSAGE,
    FeedbackGenerator,
    build_feedback_prompt,
    fallback_feedback,
    format_history_line,
)
from dharma_reason.core.scoring import aggregate
from dharma_reason.domain.dharma import DharmaScores
from dharma_reason.domain.enums import FeedbackSource
from dharma_reason.domain.step import ScoreHistoryEntry
from dharma_reason.services.llm import LLMProfile

from tests.scripted_llm import ScriptedReasoningService, failing


def _scores(m: float, e: float, n: float, b: float) -> DharmaScores:
    return DharmaScores(mindfulness=m, emptiness=e, non_duality=n, boundless_care=b)


def _entry(step_index: int, scores: DharmaScores) -> ScoreHistoryEntry:
    return ScoreHistoryEntry(
        step_index=step_index,
        scores=scores,
        aggregate_mean=aggregate(scores),
        content=f"content {step_index}",
    )


# ── Fallback ─────────────────────────────────────────────────────────────────


class TestFallbackFeedback:
    def test_all_aligned(self) -> None:
        assert fallback_feedback(DharmaScores.uniform(0.9), 0.75) == ALL_ALIGNED_MESSAGE

    def test_at_target_is_not_below(self) -> None:
        assert fallback_feedback(DharmaScores.uniform(0.75), 0.75) == ALL_ALIGNED_MESSAGE

    def test_one_sentence_per_weak_dimension_in_order(self) -> None:
        text = fallback_feedback(_scores(0.5, 0.9, 0.2, 0.9), 0.75)
        assert text == (
            "Strengthen mindfulness: explicitly note assumptions and limitations. "
            "Strengthen non-duality: consider complementary perspectives and interconnections."
        )

    def test_all_weak(self) -> None:
        text = fallback_feedback(DharmaScores.uniform(0.1), 0.75)
        assert text.count("Strengthen") == 4
        assert "boundless care" in text

    def test_reproducible(self) -> None:
        scores = _scores(0.3, 0.8, 0.6, 0.4)
        assert fallback_feedback(scores, 0.7) == fallback_feedback(scores, 0.7)
        assert fallback_feedback(scores, 0.7)


# ── Prompt ───────────────────────────────────────────────────────────────────


class TestFeedbackPrompt:
    def test_contains_definitions_and_target(self) -> None:
        prompt = build_feedback_prompt(DharmaScores.uniform(0.6), [], 0.75)
        assert "MINDFULNESS (Meta-Awareness)" in prompt
        assert "BOUNDLESS CARE (Universal Concern)" in prompt
        assert "THRESHOLD TARGET: 0.75 (current: 0.60)" in prompt
        assert "2-3 sentences" in prompt

    def test_current_scores_rendered_with_mean(self) -> None:
        prompt = build_feedback_prompt(_scores(1.0, 0.5, 0.25, 0.25), [], 0.75)
        assert '"nonDuality": 0.25' in prompt
        assert '"mean": 0.5' in prompt

    def test_history_one_line_per_entry(self) -> None:
        history = [_entry(1, _scores(0.5, 0.6, 0.7, 0.8)), _entry(2, DharmaScores.uniform(0.6))]
        prompt = build_feedback_prompt(DharmaScores.uniform(0.7), history, 0.75)
        assert "trajectory across all 2 previous steps" in prompt
        assert "Step 1: mean=0.650 [M:0.50 E:0.60 N:0.70 B:0.80]" in prompt
        assert "Step 2: mean=0.600 [M:0.60 E:0.60 N:0.60 B:0.60]" in prompt

    def test_history_line_format(self) -> None:
        line = format_history_line(_entry(3, _scores(0.1, 0.2, 0.3, 0.4)))
        assert line == "Step 3: mean=0.250 [M:0.10 E:0.20 N:0.30 B:0.40]"


# ── Generator ────────────────────────────────────────────────────────────────


class TestFeedbackGenerator:
    @pytest.mark.asyncio
    async def test_service_branch(self) -> None:
        service = ScriptedReasoningService(feedback="  Consider the wider community.  ")
        generator = FeedbackGenerator(service)
        result = await generator.generate(DharmaScores.uniform(0.5), [], 0.75)
        assert result.source == FeedbackSource.SERVICE
        assert result.text == "Consider the wider community."
        assert not result.is_fallback
        assert len(service.calls["feedback"]) == 1

    @pytest.mark.asyncio
    async def test_low_temperature_bounded_profile(self) -> None:
        service = ScriptedReasoningService()
        await FeedbackGenerator(service).generate(DharmaScores.uniform(0.5), [], 0.75)
        assert service.profiles == [LLMProfile(temperature=0.3, max_output_tokens=250)]

    @pytest.mark.asyncio
    async def test_fallback_on_service_exception(self) -> None:
        service = ScriptedReasoningService(feedback=failing("timeout"))
        scores = _scores(0.5, 0.9, 0.9, 0.9)
        result = await FeedbackGenerator(service).generate(scores, [], 0.75)
        assert result.source == FeedbackSource.FALLBACK
        assert result.text == fallback_feedback(scores, 0.75)

    @pytest.mark.asyncio
    async def test_fallback_on_factory_exception(self) -> None:
        def broken_factory(profile):
            raise RuntimeError("Gemini API key not found")

        result = await FeedbackGenerator(broken_factory).generate(
            DharmaScores.uniform(0.9), [], 0.75,
        )
        assert result.is_fallback
        assert result.text == ALL_ALIGNED_MESSAGE

    @pytest.mark.asyncio
    async def test_fallback_on_empty_response(self) -> None:
        service = ScriptedReasoningService(feedback="   ")
        result = await FeedbackGenerator(service).generate(DharmaScores.uniform(0.2), [], 0.75)
        assert result.is_fallback
        assert result.text

    @pytest.mark.asyncio
    async def test_prompt_sent_as_single_user_message(self) -> None:
        service = ScriptedReasoningService()
        history = [_entry(1, DharmaScores.uniform(0.4))]
        await FeedbackGenerator(service).generate(DharmaScores.uniform(0.5), history, 0.8)
        (messages,) = service.calls["feedback"]
        assert len(messages) == 1
        assert messages[0].type == "human"
        assert "Step 1: mean=0.400" in messages[0].content
