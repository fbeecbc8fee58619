"""Controlled enumerations for the dharma-reason domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class Dimension(str, Enum):
    """The four contemplative principles every reasoning step is scored on."""

    MINDFULNESS = "mindfulness"
    EMPTINESS = "emptiness"
    NON_DUALITY = "nonDuality"
    BOUNDLESS_CARE = "boundlessCare"


class StepSource(str, Enum):
    """How a step draft was obtained from the reasoning service response."""

    PARSED = "parsed"
    DEGRADED = "degraded"


class FeedbackSource(str, Enum):
    """Which branch of the feedback generator produced the guidance."""

    SERVICE = "service"
    FALLBACK = "fallback"


class NextStep(str, Enum):
    """Routing metadata attached to each step for the presentation layer."""

    CONTINUE = "continue"
    FINAL_ANSWER = "finalAnswer"


class TerminationReason(str, Enum):
    """Outcome of the termination policy for one iteration."""

    MAX_STEPS_REACHED = "max_steps_reached"
    MINIMUM_STEPS_REQUIRED = "minimum_steps_required"
    TARGET_REACHED = "target_reached"
    CONTINUING = "continuing"
