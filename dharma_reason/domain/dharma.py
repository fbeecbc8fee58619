"""Dharma scores — the four-dimension self-evaluation of a reasoning step.

The model scores every step it produces against four contemplative
principles, each on a 0–1 scale.  The dimensions are independent: no
relationship between them is enforced.

The textual definitions below are injected verbatim into both the step
and the feedback prompts so the service judges every call against the same
anchor instead of drifting across calls.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dharma_reason.domain.enums import Dimension


# ── Definitions ──────────────────────────────────────────────────────────────

DIMENSION_LABELS: dict[Dimension, str] = {
    Dimension.MINDFULNESS: "MINDFULNESS (Meta-Awareness)",
    Dimension.EMPTINESS: "EMPTINESS (Conceptual Flexibility)",
    Dimension.NON_DUALITY: "NON-DUALITY (Interconnection)",
    Dimension.BOUNDLESS_CARE: "BOUNDLESS CARE (Universal Concern)",
}

DIMENSION_CRITERIA: dict[Dimension, tuple[str, ...]] = {
    Dimension.MINDFULNESS: (
        "Does reasoning show awareness of its own process?",
        "Are assumptions, biases, and limitations explicitly noted?",
        "Is there reflection on the approach itself?",
    ),
    Dimension.EMPTINESS: (
        "Are conclusions held lightly and provisionally?",
        "Is uncertainty acknowledged?",
        "Are alternative interpretations considered?",
    ),
    Dimension.NON_DUALITY: (
        "Are complementary perspectives recognized?",
        "Is either/or framing avoided?",
        "Are interdependencies and trade-offs considered?",
    ),
    Dimension.BOUNDLESS_CARE: (
        "Is impact on all stakeholders considered?",
        "Are potential harms examined?",
        "Is the circle of concern expanded?",
    ),
}


def render_definitions() -> str:
    """Render the numbered dimension definitions used in every prompt."""
    blocks = []
    for number, dimension in enumerate(Dimension, start=1):
        lines = [f"{number}. {DIMENSION_LABELS[dimension]}:"]
        lines.extend(f"   - {criterion}" for criterion in DIMENSION_CRITERIA[dimension])
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


# ── Models ───────────────────────────────────────────────────────────────────


class DharmaScores(BaseModel):
    """Immutable per-step self-scores, each bounded in [0, 1]."""

    mindfulness: float = Field(
        ..., ge=0.0, le=1.0,
        description="Meta-awareness of the reasoning process, biases and assumptions",
    )
    emptiness: float = Field(
        ..., ge=0.0, le=1.0,
        description="Holding conclusions lightly, open to revision",
    )
    non_duality: float = Field(
        ..., ge=0.0, le=1.0, alias="nonDuality",
        description="Recognition of interdependence and multiple valid perspectives",
    )
    boundless_care: float = Field(
        ..., ge=0.0, le=1.0, alias="boundlessCare",
        description="Consideration of impact on all stakeholders",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    def value(self, dimension: Dimension) -> float:
        """Return the score for one dimension."""
        return {
            Dimension.MINDFULNESS: self.mindfulness,
            Dimension.EMPTINESS: self.emptiness,
            Dimension.NON_DUALITY: self.non_duality,
            Dimension.BOUNDLESS_CARE: self.boundless_care,
        }[dimension]

    @classmethod
    def uniform(cls, value: float) -> DharmaScores:
        """All four dimensions set to the same value."""
        return cls(
            mindfulness=value,
            emptiness=value,
            non_duality=value,
            boundless_care=value,
        )


class DharmaEvaluation(DharmaScores):
    """Self-scores plus the model's explanation of them (the ``dharma`` block)."""

    rationale: str = Field(..., description="Brief explanation of the dharma scores for this step")

    def scores(self) -> DharmaScores:
        """Project away the rationale."""
        return DharmaScores(
            mindfulness=self.mindfulness,
            emptiness=self.emptiness,
            non_duality=self.non_duality,
            boundless_care=self.boundless_care,
        )
