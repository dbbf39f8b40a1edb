"""Core data model and per-candle combination algorithms."""

from .combinations import CombinationGenerator, filter_subset_combinations, iter_index_combinations
from .models import Candle, Combination, RegimeState, Signal, Strategy, make_signature
from .signals import classify_signal_event, reduce_to_strongest

__all__ = [
    "Candle",
    "Signal",
    "RegimeState",
    "Combination",
    "Strategy",
    "make_signature",
    "CombinationGenerator",
    "iter_index_combinations",
    "filter_subset_combinations",
    "reduce_to_strongest",
    "classify_signal_event",
]
