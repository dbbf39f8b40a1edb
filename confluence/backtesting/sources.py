"""
Interfaces of the engine's external collaborators.

Signal evaluation and regime classification live outside this package; the
match recorder only calls them through these interfaces.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from confluence.core.models import Candle, RegimeState, Signal

# get_signals(candle, indicators, candle_index, signal_settings, regime_label)
SignalSource = Callable[[Candle, Mapping[str, Any], int, dict, str], Sequence[Signal]]


class BaseRegimeSource(ABC):
    """
    Abstract regime classifier.

    Example:
        >>> class FixedRegime(BaseRegimeSource):
        ...     def get_regime(self, candle_index):
        ...         return RegimeState("uptrend", 0.9)
    """

    @abstractmethod
    def get_regime(self, candle_index: int) -> RegimeState:
        """
        Classify the regime at a candle.

        Args:
            candle_index: Position in the run's candle series

        Returns:
            RegimeState for the candle

        Raises:
            Any exception; the recorder falls back to RegimeState.unknown()
        """
        pass


def coerce_regime(result) -> RegimeState:
    """
    Normalize a regime source result to a RegimeState.

    Accepts a RegimeState, a (regime, confidence) pair or a mapping with
    "regime" and "confidence" keys.

    Raises:
        TypeError: For any other shape
    """
    if isinstance(result, RegimeState):
        return result
    if isinstance(result, Mapping):
        return RegimeState(result.get("regime") or "unknown", float(result.get("confidence") or 0.0))
    if isinstance(result, tuple) and len(result) == 2:
        regime, confidence = result
        return RegimeState(regime or "unknown", float(confidence or 0.0))
    raise TypeError(f"Unsupported regime result: {result!r}")
