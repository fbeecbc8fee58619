"""Scoring utility — scalar aggregate of the four dharma dimensions.

Pure functions.  No state, no I/O.  Bounds are enforced by the
DharmaScores model, not here.
"""

from __future__ import annotations

from dharma_reason.domain.dharma import DharmaScores
from dharma_reason.domain.enums import Dimension


def aggregate(scores: DharmaScores) -> float:
    """Arithmetic mean of the four sub-scores."""
    return (
        scores.mindfulness
        + scores.emptiness
        + scores.non_duality
        + scores.boundless_care
    ) / 4


def format_aggregate(value: float) -> str:
    """Display form of an aggregate score (3 decimals)."""
    return f"{value:.3f}"


def format_breakdown(scores: DharmaScores) -> dict[str, str]:
    """Per-dimension display strings (2 decimals), keyed by external name."""
    return {dimension.value: f"{scores.value(dimension):.2f}" for dimension in Dimension}
