"""Market regime weighting and per-run regime statistics."""

from .tracker import RegimeTracker
from .weighting import (
    apply_regime_weighting,
    normalize_regime,
    signal_regime_multiplier,
    strategy_regime_multiplier,
)

__all__ = [
    "RegimeTracker",
    "normalize_regime",
    "signal_regime_multiplier",
    "apply_regime_weighting",
    "strategy_regime_multiplier",
]
