"""Termination policy — decides after every step whether the loop goes on.

The rules form a strict priority chain, evaluated top to bottom:

    1. step_index >= max_steps      → stop      (max_steps_reached)
    2. step_index <  MINIMUM_STEPS  → continue  (minimum_steps_required)
    3. aggregate  >= target         → stop      (target_reached)
    4. otherwise                    → continue  (continuing)

The ceiling always wins, so a configuration with max_steps below the
minimum still terminates at max_steps.
"""

from __future__ import annotations

from dataclasses import dataclass

from dharma_reason.domain.enums import NextStep, TerminationReason

MINIMUM_STEPS = 4


@dataclass(frozen=True)
class TerminationDecision:
    """Outcome of one evaluation of the termination chain."""

    reason: TerminationReason
    should_continue: bool

    @property
    def next_step(self) -> NextStep:
        return NextStep.CONTINUE if self.should_continue else NextStep.FINAL_ANSWER


def decide_termination(
    step_index: int,
    max_steps: int,
    aggregate_score: float,
    target: float,
    minimum_steps: int = MINIMUM_STEPS,
) -> TerminationDecision:
    """Evaluate the termination chain for the step just completed."""
    if step_index >= max_steps:
        return TerminationDecision(TerminationReason.MAX_STEPS_REACHED, False)
    if step_index < minimum_steps:
        return TerminationDecision(TerminationReason.MINIMUM_STEPS_REQUIRED, True)
    if aggregate_score >= target:
        return TerminationDecision(TerminationReason.TARGET_REACHED, False)
    return TerminationDecision(TerminationReason.CONTINUING, True)
