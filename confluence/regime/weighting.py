"""
Regime-aware weighting.

Two independent multipliers:
- Signal level: boosts or dampens one signal's strength depending on the
  market regime and the kind of signal (trend-following, mean-reversion,
  breakout). Applied by signal sources before strengths reach the engine.
- Strategy level: scales a strategy's conviction by how well the current
  regime matches the regime it was discovered in.
"""

from dataclasses import replace
from typing import Literal

from confluence.core.models import Signal

RegimeCategory = Literal[
    "trending_up", "trending_down", "ranging", "volatile", "low_volatility", "unknown"
]

TREND_FOLLOWING_TYPES = frozenset(
    {
        "macd",
        "ema",
        "sma",
        "ma200",
        "tema",
        "dema",
        "hma",
        "wma",
        "maribbon",
        "ichimoku",
        "awesomeoscillator",
        "psar",
    }
)
MEAN_REVERSION_TYPES = frozenset(
    {"rsi", "stochastic", "stochrsi", "bollinger", "williamsr", "cci", "cmo", "mfi", "keltner"}
)
BREAKOUT_TYPES = frozenset(
    {"bollinger", "donchian", "atr", "ttm_squeeze", "squeeze", "keltner", "volume", "bbw"}
)

_REGIME_ALIASES: dict[str, RegimeCategory] = {
    "uptrend": "trending_up",
    "bullish trend": "trending_up",
    "bullish": "trending_up",
    "trending up": "trending_up",
    "downtrend": "trending_down",
    "bearish trend": "trending_down",
    "bearish": "trending_down",
    "trending down": "trending_down",
    "ranging": "ranging",
    "ranging / sideways": "ranging",
    "sideways": "ranging",
    "volatile": "volatile",
    "high volatility": "volatile",
    "low volatility": "low_volatility",
    "low_volatility": "low_volatility",
}

# Strategy-level base multipliers
PERFECT_ALIGNMENT = 1.25
PARTIAL_ALIGNMENT = 1.1
MISALIGNMENT = 0.8
_DIRECTIONAL_REGIMES = ("uptrend", "downtrend")


def normalize_regime(regime_label: str | None) -> RegimeCategory:
    """Map a free-form regime label onto a regime category."""
    if not regime_label:
        return "unknown"
    label = str(regime_label).strip().lower()
    return _REGIME_ALIASES.get(label, _REGIME_ALIASES.get(label.replace("_", " "), "unknown"))


def signal_regime_multiplier(regime_label: str | None, signal_type: str, direction: str) -> float:
    """
    Strength multiplier for one signal in the given regime.

    Table:
        trending up:    bullish 1.2, bearish 0.8
        trending down:  bullish 0.8, bearish 1.2
        ranging:        mean-reversion 1.15, trend-following 0.85
        volatile:       breakout 1.2
        low volatility: mean-reversion 1.1, breakout 0.9

    Args:
        regime_label: Regime label (e.g. "uptrend", "Bullish Trend", "Volatile")
        signal_type: Indicator family of the signal
        direction: "bullish", "bearish" or "neutral"

    Returns:
        Multiplier, 1.0 for any unmatched combination

    Example:
        >>> signal_regime_multiplier("ranging", "RSI", "bullish")
        1.15
    """
    category = normalize_regime(regime_label)
    kind = (signal_type or "").lower()

    if category == "trending_up":
        if direction == "bullish":
            return 1.2
        if direction == "bearish":
            return 0.8
    elif category == "trending_down":
        if direction == "bullish":
            return 0.8
        if direction == "bearish":
            return 1.2
    elif category == "ranging":
        if kind in MEAN_REVERSION_TYPES:
            return 1.15
        if kind in TREND_FOLLOWING_TYPES:
            return 0.85
    elif category == "volatile":
        if kind in BREAKOUT_TYPES:
            return 1.2
    elif category == "low_volatility":
        if kind in MEAN_REVERSION_TYPES:
            return 1.1
        if kind in BREAKOUT_TYPES:
            return 0.9

    return 1.0


def apply_regime_weighting(signals, regime_label: str | None) -> list[Signal]:
    """
    Return copies of the signals with regime-adjusted strength (capped 0-100).

    Intended for signal sources; the engine does not reweight strengths.
    """
    weighted = []
    for signal in signals or []:
        multiplier = signal_regime_multiplier(regime_label, signal.type, signal.direction)
        strength = max(0.0, min(100.0, signal.strength * multiplier))
        weighted.append(replace(signal, strength=strength))
    return weighted


def strategy_regime_multiplier(
    current_regime: str | None, dominant_regime: str | None, confidence: float
) -> float:
    """
    Conviction multiplier from regime alignment.

    Base multiplier:
        1.25 when the current regime equals the strategy's dominant regime
        1.1  when one side is "ranging" and the other is directional
        0.8  otherwise

    The base is pulled toward neutral by detection confidence:
        final = 1.0 + (base - 1.0) * confidence

    Args:
        current_regime: Regime detected now
        dominant_regime: Regime the strategy historically matched in
        confidence: Detection confidence 0-1 (clamped)

    Returns:
        Multiplier; 1.0 when either regime is missing or confidence is 0

    Example:
        >>> strategy_regime_multiplier("uptrend", "uptrend", 1.0)
        1.25
        >>> strategy_regime_multiplier("uptrend", "downtrend", 0.5)
        0.9
    """
    if not current_regime or not dominant_regime:
        return 1.0

    current = str(current_regime).lower()
    expected = str(dominant_regime).lower()

    if current == expected:
        base = PERFECT_ALIGNMENT
    elif (current == "ranging" and expected in _DIRECTIONAL_REGIMES) or (
        expected == "ranging" and current in _DIRECTIONAL_REGIMES
    ):
        base = PARTIAL_ALIGNMENT
    else:
        base = MISALIGNMENT

    confidence = max(0.0, min(1.0, float(confidence or 0.0)))
    return 1.0 + (base - 1.0) * confidence
