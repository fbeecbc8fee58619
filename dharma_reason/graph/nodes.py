"""LangGraph nodes — the iteration controller, one function per phase.

Each node:
    - Receives the full SessionState
    - Returns a partial dict update
    - Performs I/O only through the injected reasoning-service components

One loop iteration runs:

    prepare_context → generate_step → record_step → generate_feedback
                    → finalize_step → check_termination

The loop is strictly sequential: step N+1 is never requested before step
N's feedback call has resolved (by service result or by fallback).
"""

from __future__ import annotations

import json
import logging

from dharma_reason.core.feedback import FeedbackGenerator
from dharma_reason.core.scoring import aggregate, format_aggregate, format_breakdown
from dharma_reason.core.step_generator import StepGenerator, build_step_messages
from dharma_reason.core.synthesis import Synthesizer
from dharma_reason.core.termination import decide_termination
from dharma_reason.domain.step import ReasoningStep, ScoreHistoryEntry
from dharma_reason.foundation.clock import monotonic_ms, utc_now
from dharma_reason.graph.state import SessionState

logger = logging.getLogger(__name__)
telemetry_logger = logging.getLogger("dharma_reason.telemetry")


# ── 1. prepare_context ──────────────────────────────────────────────────────

def prepare_context(state: SessionState) -> dict:
    """Advance the step counter and build the request for the new step.

    Feedback from the previous step is injected as an attributed note
    before the "generate step N" instruction.  It is the only channel by
    which feedback influences future reasoning.
    """
    step_index = state.get("step_index", 0) + 1
    context = build_step_messages(
        state.get("conversation", []),
        step_index,
        state["max_steps"],
        state.get("previous_feedback"),
    )
    logger.debug("Prepared context for step %d (%d messages)", step_index, len(context))
    return {
        "step_index": step_index,
        "context": context,
        "step_started_at": monotonic_ms(),
        "draft": None,
        "feedback": None,
        "decision": None,
    }


# ── 2. generate_step ────────────────────────────────────────────────────────

def make_generate_step(generator: StepGenerator):
    """Create the generate_step node with an injected StepGenerator.

    Malformed responses are absorbed by the generator (degraded drafts).
    An exception from the service call itself aborts the loop: the session
    proceeds to synthesis with the steps already recorded.
    """

    async def generate_step(state: SessionState) -> dict:
        step_index = state["step_index"]
        try:
            draft = await generator.complete(state["context"], step_index)
        except Exception as exc:
            logger.error("Error in step %d: %s, aborting loop", step_index, exc)
            return {"aborted": True, "abort_reason": str(exc)}
        return {"draft": draft}

    return generate_step


def route_after_generation(state: SessionState) -> str:
    """Conditional edge: "abort" on a fatal step error, "record" otherwise."""
    if state.get("aborted"):
        return "abort"
    return "record"


# ── 3. record_step ──────────────────────────────────────────────────────────

def record_step(state: SessionState) -> dict:
    """Score the draft and append it to the trajectory."""
    draft = state["draft"]
    scores = draft.evaluation.scores()
    mean = aggregate(scores)
    entry = ScoreHistoryEntry(
        step_index=state["step_index"],
        scores=scores,
        aggregate_mean=mean,
        content=draft.content,
    )
    return {
        "current_aggregate": mean,
        "score_history": [*state.get("score_history", []), entry],
    }


# ── 4. generate_feedback ────────────────────────────────────────────────────

def make_generate_feedback(generator: FeedbackGenerator):
    """Create the generate_feedback node with an injected FeedbackGenerator."""

    async def generate_feedback(state: SessionState) -> dict:
        history = state.get("score_history", [])
        result = await generator.generate(
            state["draft"].evaluation.scores(),
            history[:-1],  # strictly prior steps
            state["target"],
        )
        return {"feedback": result}

    return generate_feedback


# ── 5. finalize_step ────────────────────────────────────────────────────────

def finalize_step(state: SessionState) -> dict:
    """Decide termination, record the immutable step, emit telemetry."""
    step_index = state["step_index"]
    max_steps = state["max_steps"]
    target = state["target"]
    draft = state["draft"]
    feedback = state["feedback"]
    mean = state["current_aggregate"]
    scores = draft.evaluation.scores()

    decision = decide_termination(
        step_index,
        max_steps,
        mean,
        target,
        minimum_steps=state["minimum_steps"],
    )

    step = ReasoningStep(
        title=draft.title,
        content=draft.content,
        scores=scores,
        rationale=draft.evaluation.rationale,
        step_index=step_index,
        max_steps=max_steps,
        aggregate=mean,
        feedback=feedback.text,
        feedback_source=feedback.source,
        next_step=decision.next_step,
        termination_reason=decision.reason,
        source=draft.source,
    )

    latency_ms = monotonic_ms() - state.get("step_started_at", monotonic_ms())
    telemetry_logger.info(json.dumps({
        "event": "reasoning_step",
        "timestamp": utc_now().isoformat(),
        "run_id": state.get("run_id"),
        "step_index": step_index,
        "max_steps": max_steps,
        "model_self_score": format_aggregate(mean),
        "model_score_breakdown": format_breakdown(scores),
        "target_threshold": target,
        "target_reached": mean >= target,
        "termination_reason": decision.reason.value,
        "should_continue": decision.should_continue,
        "latency_ms": round(latency_ms),
        "title": draft.title,
        "feedback_length": len(feedback.text),
        "feedback_source": feedback.source.value,
        "step_source": draft.source.value,
    }))

    return {
        "steps": [*state.get("steps", []), step],
        "previous_feedback": feedback.text,
        "decision": decision,
    }


# ── 6. check_termination ────────────────────────────────────────────────────

def check_termination(state: SessionState) -> str:
    """Conditional edge: decide whether to loop or move on to synthesis.

    Returns:
        "loop"       — generate another step
        "synthesize" — stop iterating and produce the final answer
    """
    decision = state["decision"]
    if decision.should_continue:
        logger.debug(
            "Continuing after step %d (%s)", state["step_index"], decision.reason.value,
        )
        return "loop"

    logger.info(
        "Stopping after step %d (%s)", state["step_index"], decision.reason.value,
    )
    return "synthesize"


# ── 7. synthesize ───────────────────────────────────────────────────────────

def make_synthesize(synthesizer: Synthesizer):
    """Create the synthesize node with an injected Synthesizer."""

    async def synthesize(state: SessionState) -> dict:
        steps = state.get("steps", [])
        logger.info(
            "Session %s completed with %d steps. Generating final synthesis...",
            state.get("run_id"), len(steps),
        )
        answer = await synthesizer.synthesize(state.get("conversation", []), steps)
        return {"answer": answer}

    return synthesize
