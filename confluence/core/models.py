"""
Data model for the signal-combination engine.

Signals are plain tagged records (type + qualitative value + numeric strength)
produced by external evaluators. Combinations are strength-qualified subsets of
the signals active at one candle; their signature (sorted member types) is the
identity used for grouping and deduplication.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd

from confluence.config import SIGNATURE_SEPARATOR

Direction = Literal["bullish", "bearish", "neutral"]


@dataclass(frozen=True)
class Candle:
    """
    One OHLCV bar.

    Attributes:
        timestamp: Bar open time
        open: Open price
        high: High price
        low: Low price
        close: Close price
        volume: Traded volume
    """

    timestamp: pd.Timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def __post_init__(self):
        """Validate candle prices."""
        if self.high < self.low:
            raise ValueError(f"High ({self.high}) must be >= low ({self.low})")
        if self.volume < 0:
            raise ValueError(f"Volume must be non-negative, got {self.volume}")


@dataclass(frozen=True)
class Signal:
    """
    Typed, scored observation from one indicator at one candle.

    Attributes:
        type: Indicator family (e.g. "RSI", "MACD")
        value: Qualitative label (e.g. "Oversold Entry", "Bullish Cross")
        strength: Signal strength 0-100
        is_event: True for transient triggers, False for persistent states
        direction: "bullish", "bearish" or "neutral"
        priority: Evaluator-defined ordering hint
    """

    type: str
    value: str = ""
    strength: float = 0.0
    is_event: bool = False
    direction: Direction = "neutral"
    priority: int = 0

    def __post_init__(self):
        """Validate signal fields."""
        if not self.type:
            raise ValueError("Signal type must be a non-empty string")
        if not 0 <= self.strength <= 100:
            raise ValueError(f"Strength must be 0-100, got {self.strength}")
        if self.direction not in ("bullish", "bearish", "neutral"):
            raise ValueError(
                f"Direction must be bullish, bearish or neutral, got {self.direction}"
            )


@dataclass(frozen=True)
class RegimeState:
    """Market regime label with detection confidence (0-1)."""

    regime: str = "unknown"
    confidence: float = 0.0

    def __post_init__(self):
        if not 0 <= self.confidence <= 1:
            raise ValueError(f"Confidence must be 0-1, got {self.confidence}")

    @classmethod
    def unknown(cls) -> "RegimeState":
        return cls("unknown", 0.0)


def make_signature(signals) -> str:
    """
    Build the canonical signature of a group of signals.

    Only signal types are used, so two combinations of the same indicator
    families collide even when their values (e.g. bullish vs bearish cross)
    differ.

    Example:
        >>> make_signature([Signal("RSI", strength=80), Signal("MACD", strength=90)])
        'MACD + RSI'
    """
    return SIGNATURE_SEPARATOR.join(sorted(s.type for s in signals if s.type))


@dataclass(frozen=True)
class Combination:
    """
    Strength-qualified subset of the signals active at one candle.

    Attributes:
        signals: Member signals in generation order
        combined_strength: Sum of member strengths
        candle_index: Position of the candle in the run's series
        time: Candle timestamp
        price: Candle close price
        coin: Asset symbol
        timeframe: Candle timeframe
        market_regime: Regime label at the candle
        regime_confidence: Regime detection confidence at the candle
    """

    signals: tuple[Signal, ...]
    combined_strength: float
    candle_index: int
    time: Any = None
    price: float | None = None
    coin: str = ""
    timeframe: str = ""
    market_regime: str = "unknown"
    regime_confidence: float = 0.0

    @property
    def signature(self) -> str:
        return make_signature(self.signals)

    @property
    def type_set(self) -> frozenset[str]:
        return frozenset(s.type for s in self.signals)

    @property
    def size(self) -> int:
        return len(self.signals)


@dataclass
class Strategy:
    """
    A discovered combination promoted to a reusable strategy.

    Persistence is owned by the caller; the conviction scorer only reads it.

    Attributes:
        name: Combination signature
        signal_types: Member signal types
        dominant_regime: Regime the combination matched in most often
        combined_strength: Representative combined strength
        occurrences: Number of recorded matches
        regime_distribution: Match count per regime
        live_trade_count: Number of live trades taken with this strategy
        live_profit_factor: Gross profit / gross loss of live trades
        live_win_rate: Live win rate in percent (0-100)
    """

    name: str
    signal_types: tuple[str, ...] = ()
    dominant_regime: str | None = None
    combined_strength: float = 0.0
    occurrences: int = 0
    regime_distribution: dict[str, int] = field(default_factory=dict)

    live_trade_count: int = 0
    live_profit_factor: float | None = None
    live_win_rate: float | None = None
