"""Conviction scoring for live candidate strategies."""

from .conviction import (
    ConvictionScore,
    FactorScore,
    calculate_conviction_score,
    conviction_multiplier,
)

__all__ = [
    "calculate_conviction_score",
    "conviction_multiplier",
    "ConvictionScore",
    "FactorScore",
]
