"""
Conviction scoring for live candidate strategies.

A conviction score (0-100) rates how much to trust a strategy that just
matched, given current market conditions. It is the sum of four factors:
- Market regime alignment: 0-20 points
- Signal strength and confluence: 0-60 points
- Volatility (squeeze + ADX): 0-20 points
- Live performance: -20 to +25 points

The clamped sum (raw score) selects a multiplier tier that boosts
high-conviction setups:
- raw >= 80: 1.5x
- raw >= 65: 1.25x
- otherwise: 1.0x
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from confluence.core.models import RegimeState, Strategy
from confluence.regime.weighting import strategy_regime_multiplier

logger = logging.getLogger(__name__)

REGIME_FACTOR_CAP = 20.0
SIGNAL_STRENGTH_POINTS = 50.0
CONFLUENCE_POINTS_PER_SIGNAL = 5.0
CONFLUENCE_CAP = 10.0

SQUEEZE_BASE_POINTS = 10.0
SQUEEZE_DURATION_CAP = 5
ADX_TREND_THRESHOLD = 25.0
ADX_BONUS_CAP = 5.0

MIN_LIVE_TRADES = 10
PF_POINTS_CAP = 20.0

HIGH_CONVICTION = 80.0
MEDIUM_CONVICTION = 65.0


@dataclass
class FactorScore:
    """Points contributed by one factor, with an explanation or error."""

    score: float = 0.0
    details: str = ""
    error: str | None = None


@dataclass
class ConvictionScore:
    """
    Conviction scoring output.

    Attributes:
        score: Adjusted score 0-100, rounded to one decimal
        raw_score: Clamped factor sum before the multiplier
        multiplier: Tier multiplier (1.0, 1.25 or 1.5)
        breakdown: Factor name -> FactorScore
    """

    score: float = 0.0
    raw_score: float = 0.0
    multiplier: float = 1.0
    breakdown: dict[str, FactorScore] = field(default_factory=dict)

    @property
    def error(self) -> str | None:
        entry = self.breakdown.get("error")
        return entry.error if entry else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float, digits: int = 1) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def conviction_multiplier(raw_score: float) -> float:
    """Tier multiplier for a raw score; non-decreasing in raw_score."""
    if raw_score >= HIGH_CONVICTION:
        return 1.5
    if raw_score >= MEDIUM_CONVICTION:
        return 1.25
    return 1.0


def _value_at(sequence, index: int):
    """Positional read from a list, array or pandas Series; None if out of range."""
    if sequence is None:
        return None
    try:
        if hasattr(sequence, "iloc"):
            return sequence.iloc[index]
        return sequence[index]
    except (IndexError, KeyError):
        return None


def _squeeze_on(state) -> bool:
    if state is None:
        return False
    if isinstance(state, dict):
        return bool(state.get("squeeze_on") or state.get("is_squeeze") or state.get("isSqueeze"))
    if isinstance(state, (float, np.floating)) and np.isnan(state):
        return False
    return bool(state)


def _adx_value(entry) -> float | None:
    if isinstance(entry, dict):
        entry = entry.get("adx", entry.get("ADX"))
    if entry is None:
        return None
    try:
        value = float(entry)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(value) else value


def adx_bonus(adx: float | None) -> float:
    """+1 point per 5 ADX above 25, max +5."""
    if adx is None or adx <= ADX_TREND_THRESHOLD:
        return 0.0
    return min(ADX_BONUS_CAP, (adx - ADX_TREND_THRESHOLD) / 5)


def regime_factor(strategy: Strategy, market_regime: RegimeState | None) -> FactorScore:
    if market_regime is None:
        multiplier = 1.0
    else:
        multiplier = strategy_regime_multiplier(
            market_regime.regime, strategy.dominant_regime, market_regime.confidence
        )
    score = min(REGIME_FACTOR_CAP, REGIME_FACTOR_CAP * multiplier)
    current = market_regime.regime if market_regime else None
    return FactorScore(
        score,
        f"Regime: {current}, strategy dominant: {strategy.dominant_regime}, "
        f"multiplier: {multiplier:.2f}",
    )


def signal_strength_factor(matched_signals) -> FactorScore:
    strengths = [s.strength or 0 for s in matched_signals]
    average = sum(strengths) / len(strengths)
    confluence = min(CONFLUENCE_CAP, (len(strengths) - 1) * CONFLUENCE_POINTS_PER_SIGNAL)
    score = average * SIGNAL_STRENGTH_POINTS / 100 + confluence
    return FactorScore(score, f"Avg strength: {average:.2f}, confluence bonus: {confluence:g}")


def volatility_factor(indicators, latest_index: int) -> FactorScore:
    """
    Squeeze + trend strength factor (0-20 points).

    Squeeze active: 10 base + 1 per 2 consecutive squeeze candles (max 5)
    + ADX bonus (max 5). No squeeze or no squeeze data: ADX bonus only.
    """
    squeeze = indicators.get("squeeze")
    if squeeze is None:
        squeeze = indicators.get("ttm_squeeze")

    adx = _adx_value(_value_at(indicators.get("adx"), latest_index))
    bonus = adx_bonus(adx)
    adx_text = f"{adx:.1f}" if adx is not None else "N/A"

    state = _value_at(squeeze, latest_index)
    if squeeze is None or state is None:
        return FactorScore(bonus, f"Squeeze indicator not available, ADX: {adx_text}")

    if not _squeeze_on(state):
        return FactorScore(bonus, f"No squeeze, ADX: {adx_text}")

    duration = 0
    for i in range(latest_index, -1, -1):
        if not _squeeze_on(_value_at(squeeze, i)):
            break
        duration += 1

    score = SQUEEZE_BASE_POINTS + min(SQUEEZE_DURATION_CAP, duration // 2) + bonus
    return FactorScore(score, f"Squeeze active ({duration} candles), ADX: {adx_text}")


def live_performance_factor(strategy: Strategy) -> FactorScore:
    """
    Live trading performance (-20 to +25 points), once 10+ trades exist.

    PF 0.5 = -20, PF 1.0 = 0, PF 1.5 = +20, weighted up to 1.2x for larger
    samples, plus up to +5 for win rate above 50%.
    """
    trades = strategy.live_trade_count or 0
    if trades < MIN_LIVE_TRADES:
        return FactorScore(0.0, f"Not enough live trades ({trades})")

    profit_factor = strategy.live_profit_factor or 0.0
    win_rate = strategy.live_win_rate if strategy.live_win_rate is not None else 50.0

    base = _clamp((profit_factor - 1.0) * 40, -PF_POINTS_CAP, PF_POINTS_CAP)
    recency_weight = min(1.2, 1.0 + min(trades, 50) / 250)
    win_rate_bonus = _clamp((win_rate - 50) * 0.1, 0.0, 5.0)

    score = _clamp(base * recency_weight + win_rate_bonus, -20.0, 25.0)
    return FactorScore(
        score,
        f"Live P/F: {profit_factor:.2f}, win rate: {win_rate:.1f}%, trades: {trades} "
        f"({recency_weight * 100:.0f}% recency weight)",
    )


def _missing_input(strategy, matched_signals, indicators, candles) -> str | None:
    if strategy is None:
        return "Missing strategy"
    if not matched_signals:
        return "No matched signals"
    if indicators is None:
        return "Missing indicators"
    if candles is None or len(candles) == 0:
        return "No candle data"
    if len(candles) < 2:
        return "Not enough candle data"
    return None


def calculate_conviction_score(
    strategy: Strategy,
    matched_signals,
    indicators,
    candles,
    market_regime: RegimeState | None = None,
) -> ConvictionScore:
    """
    Score a matched strategy under current market conditions.

    Args:
        strategy: Strategy that matched
        matched_signals: Signals that formed the match
        indicators: Indicator snapshot (name -> per-candle sequence); reads
            "squeeze"/"ttm_squeeze" and "adx"
        candles: Recent candle series; the last closed candle
            (index len - 2) is the evaluation point
        market_regime: Current regime (neutral if None)

    Returns:
        ConvictionScore; score 0 with an "error" breakdown entry if an input
        is missing

    Example:
        >>> result = calculate_conviction_score(strategy, signals, indicators, candles, regime)
        >>> print(f"Conviction: {result.score} (x{result.multiplier})")
    """
    problem = _missing_input(strategy, matched_signals, indicators, candles)
    if problem:
        name = getattr(strategy, "name", None)
        logger.warning(f"Conviction scoring skipped for {name}: {problem}")
        return ConvictionScore(breakdown={"error": FactorScore(0.0, error=problem)})

    latest_index = len(candles) - 2
    factors = {
        "market_regime": lambda: regime_factor(strategy, market_regime),
        "signal_strength": lambda: signal_strength_factor(matched_signals),
        "volatility": lambda: volatility_factor(indicators, latest_index),
        "live_performance": lambda: live_performance_factor(strategy),
    }

    breakdown: dict[str, FactorScore] = {}
    for name, compute in factors.items():
        try:
            breakdown[name] = compute()
        except Exception as e:
            logger.error(f"Failed to calculate {name} factor for {strategy.name}: {e}")
            breakdown[name] = FactorScore(0.0, error=str(e))

    raw_score = _clamp(sum(f.score for f in breakdown.values()), 0.0, 100.0)
    multiplier = conviction_multiplier(raw_score)
    adjusted = _clamp(raw_score * multiplier, 0.0, 100.0)

    return ConvictionScore(
        score=_round_half_up(adjusted),
        raw_score=raw_score,
        multiplier=multiplier,
        breakdown=breakdown,
    )


# =============================================================================
# TEST REQUIREMENTS
# =============================================================================
# [x] test_missing_inputs_score_zero
# [x] test_regime_factor_capped_at_20
# [x] test_signal_factor_confluence_capped_at_10
# [x] test_volatility_squeeze_duration_and_adx
# [x] test_volatility_falls_back_to_adx
# [x] test_live_performance_requires_10_trades
# [x] test_live_performance_clamped
# [x] test_failing_factor_isolated
# [x] test_multiplier_tiers
# [x] test_score_always_0_to_100
# =============================================================================
