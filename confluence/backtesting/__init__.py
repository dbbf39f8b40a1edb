"""Walk-forward signal-combination backtesting."""

from .engine import MatchRecorder, RunState, run_backtest
from .results import (
    BacktestResult,
    dominant_regime,
    group_matches_by_signature,
    promote_to_strategy,
    summarize_matches,
)
from .sources import BaseRegimeSource, SignalSource, coerce_regime

__all__ = [
    "MatchRecorder",
    "RunState",
    "run_backtest",
    "BacktestResult",
    "group_matches_by_signature",
    "dominant_regime",
    "summarize_matches",
    "promote_to_strategy",
    "BaseRegimeSource",
    "SignalSource",
    "coerce_regime",
]
