"""Tests for conviction scoring."""

import numpy as np
import pandas as pd
import pytest

from confluence.core.models import RegimeState, Signal, Strategy
from confluence.risk.conviction import (
    ConvictionScore,
    adx_bonus,
    calculate_conviction_score,
    conviction_multiplier,
    live_performance_factor,
    signal_strength_factor,
    volatility_factor,
)
from tests.fixtures.sample_data import make_candles

CANDLES = make_candles(20)
LATEST = len(CANDLES) - 2


def _squeeze(active_for: int, length: int = 20) -> list[dict]:
    """Squeeze data with the squeeze on for the last `active_for` closed candles."""
    states = [{"squeeze_on": False} for _ in range(length)]
    for i in range(LATEST - active_for + 1, LATEST + 1):
        states[i] = {"squeeze_on": True}
    return states


@pytest.fixture
def strategy():
    return Strategy(name="MACD + RSI", signal_types=("MACD", "RSI"), dominant_regime="uptrend")


@pytest.fixture
def signals():
    return [Signal("RSI", "Oversold Entry", 80), Signal("MACD", "Bullish Cross", 80)]


class TestConvictionScenario:
    """End-to-end scoring scenarios."""

    def test_reference_scenario(self, strategy, signals):
        """Regime 20 + signals 45 + squeeze 12 + no trades = 77 -> x1.25 -> 96.3."""
        indicators = {"squeeze": _squeeze(4), "adx": [20.0] * 20}

        result = calculate_conviction_score(
            strategy, signals, indicators, CANDLES, RegimeState("uptrend", 1.0)
        )

        assert result.breakdown["market_regime"].score == 20
        assert result.breakdown["signal_strength"].score == pytest.approx(45)
        assert result.breakdown["volatility"].score == 12
        assert result.breakdown["live_performance"].score == 0
        assert result.raw_score == pytest.approx(77)
        assert result.multiplier == 1.25
        assert result.score == 96.3

    def test_low_score_no_multiplier(self, strategy):
        """A weak setup should keep the 1.0 multiplier."""
        weak = [Signal("RSI", strength=20)]

        result = calculate_conviction_score(
            strategy, weak, {}, CANDLES, RegimeState("downtrend", 1.0)
        )

        # regime 16 + signals 10 + volatility 0
        assert result.raw_score == pytest.approx(26)
        assert result.multiplier == 1.0
        assert result.score == 26.0

    def test_score_clamped_to_100(self, signals):
        """High conviction scores should be clamped at 100."""
        strong = Strategy(
            name="MACD + RSI",
            dominant_regime="uptrend",
            live_trade_count=50,
            live_profit_factor=2.0,
            live_win_rate=80,
        )
        top_signals = [Signal(t, strength=100) for t in ("RSI", "MACD", "EMA")]
        indicators = {"squeeze": _squeeze(12), "adx": [60.0] * 20}

        result = calculate_conviction_score(
            strong, top_signals, indicators, CANDLES, RegimeState("uptrend", 1.0)
        )

        assert result.raw_score == 100
        assert result.multiplier == 1.5
        assert result.score == 100

    def test_missing_regime_is_neutral(self, strategy, signals):
        """No market regime should give the neutral 20-point regime factor."""
        result = calculate_conviction_score(strategy, signals, {}, CANDLES, None)

        assert result.breakdown["market_regime"].score == 20


class TestMissingInputs:
    """Missing required inputs should short-circuit to zero."""

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"strategy": None}, "Missing strategy"),
            ({"matched_signals": []}, "No matched signals"),
            ({"indicators": None}, "Missing indicators"),
            ({"candles": []}, "No candle data"),
            ({"candles": CANDLES[:1]}, "Not enough candle data"),
        ],
    )
    def test_missing_input(self, strategy, signals, overrides, message):
        """Each missing input should yield score 0 with one error entry."""
        kwargs = {
            "strategy": strategy,
            "matched_signals": signals,
            "indicators": {},
            "candles": CANDLES,
            "market_regime": RegimeState("uptrend", 1.0),
        }
        kwargs.update(overrides)

        result = calculate_conviction_score(**kwargs)

        assert result.score == 0
        assert result.multiplier == 1.0
        assert list(result.breakdown) == ["error"]
        assert result.error == message


class TestFactors:
    """Tests for the individual factors."""

    def test_regime_factor_capped_at_20(self, strategy, signals):
        """Perfect alignment (x1.25) should still cap at 20 points."""
        result = calculate_conviction_score(
            strategy, signals, {}, CANDLES, RegimeState("uptrend", 1.0)
        )
        assert result.breakdown["market_regime"].score == 20

    def test_regime_factor_mismatch(self, strategy, signals):
        """A mismatch at full confidence should score 16."""
        result = calculate_conviction_score(
            strategy, signals, {}, CANDLES, RegimeState("downtrend", 1.0)
        )
        assert result.breakdown["market_regime"].score == pytest.approx(16)

    def test_signal_factor_confluence_capped_at_10(self):
        """Confluence bonus should cap at 10 points."""
        two = signal_strength_factor([Signal("A", strength=60), Signal("B", strength=60)])
        five = signal_strength_factor([Signal(t, strength=60) for t in "ABCDE"])

        assert two.score == pytest.approx(30 + 5)
        assert five.score == pytest.approx(30 + 10)

    def test_single_signal_no_confluence(self):
        """A single signal earns no confluence bonus."""
        assert signal_strength_factor([Signal("A", strength=100)]).score == pytest.approx(50)

    def test_squeeze_duration_bonus_capped(self):
        """Duration bonus is 1 point per 2 candles, max 5."""
        assert volatility_factor({"squeeze": _squeeze(1)}, LATEST).score == 10
        assert volatility_factor({"squeeze": _squeeze(7)}, LATEST).score == 13
        assert volatility_factor({"squeeze": _squeeze(19)}, LATEST).score == 15

    def test_squeeze_with_adx_bonus(self):
        """ADX above 25 adds up to 5 points while squeezing."""
        indicators = {"squeeze": _squeeze(4), "adx": [{"adx": 35.0}] * 20}
        assert volatility_factor(indicators, LATEST).score == pytest.approx(14)

    def test_no_squeeze_uses_adx_only(self):
        """Without an active squeeze only the ADX bonus counts."""
        indicators = {"squeeze": _squeeze(0), "adx": [40.0] * 20}
        factor = volatility_factor(indicators, LATEST)

        assert factor.score == pytest.approx(3)
        assert "No squeeze" in factor.details

    def test_missing_squeeze_falls_back_to_adx(self):
        """Missing squeeze data falls back to the ADX bonus."""
        factor = volatility_factor({"adx": [70.0] * 20}, LATEST)

        assert factor.score == 5
        assert "not available" in factor.details

    def test_ttm_squeeze_key_and_series_input(self):
        """'ttm_squeeze' and pandas Series inputs should be read positionally."""
        index = pd.date_range("2024-01-01", periods=20, freq="4h")
        squeeze = pd.Series([False] * 16 + [True, True, True, False], index=index)
        adx = pd.Series(np.full(20, 30.0), index=index)

        factor = volatility_factor({"ttm_squeeze": squeeze, "adx": adx}, LATEST)

        # 3 candles of squeeze -> +1, ADX 30 -> +1
        assert factor.score == pytest.approx(12)

    def test_adx_bonus(self):
        """ADX bonus should be 0 up to 25 and cap at 5."""
        assert adx_bonus(None) == 0
        assert adx_bonus(25) == 0
        assert adx_bonus(30) == pytest.approx(1)
        assert adx_bonus(100) == 5

    def test_live_performance_requires_10_trades(self):
        """Fewer than 10 live trades should score 0."""
        strategy = Strategy(name="X", live_trade_count=9, live_profit_factor=3.0)
        factor = live_performance_factor(strategy)

        assert factor.score == 0
        assert "Not enough" in factor.details

    def test_live_performance_formula(self):
        """PF 1.25 with 25 trades and 60% win rate."""
        strategy = Strategy(
            name="X", live_trade_count=25, live_profit_factor=1.25, live_win_rate=60
        )
        # base 10 * (1 + 25/250) = 11, win-rate bonus 1
        assert live_performance_factor(strategy).score == pytest.approx(12)

    def test_live_performance_clamped(self):
        """Live performance should stay within -20 and 25."""
        great = Strategy(name="X", live_trade_count=100, live_profit_factor=5.0, live_win_rate=100)
        awful = Strategy(name="X", live_trade_count=100, live_profit_factor=0.0, live_win_rate=10)

        assert live_performance_factor(great).score == 25
        assert live_performance_factor(awful).score == -20

    def test_failing_factor_isolated(self, strategy, signals):
        """A factor that raises should score 0 without affecting the others."""

        class BrokenIndicators(dict):
            def get(self, key, default=None):
                raise RuntimeError("indicator store offline")

        result = calculate_conviction_score(
            strategy, signals, BrokenIndicators(), CANDLES, RegimeState("uptrend", 1.0)
        )

        assert result.breakdown["volatility"].score == 0
        assert "offline" in result.breakdown["volatility"].error
        assert result.breakdown["signal_strength"].score == pytest.approx(45)
        assert result.raw_score == pytest.approx(65)


class TestMultiplier:
    """Tests for the multiplier tiers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [(0, 1.0), (64.9, 1.0), (65, 1.25), (79.9, 1.25), (80, 1.5), (100, 1.5)],
    )
    def test_tiers(self, raw, expected):
        """Tier boundaries should be inclusive."""
        assert conviction_multiplier(raw) == expected

    def test_monotonic(self):
        """Multiplier should never decrease as the raw score grows."""
        multipliers = [conviction_multiplier(x / 2) for x in range(0, 201)]
        assert multipliers == sorted(multipliers)

    def test_score_always_in_range(self, strategy):
        """Score should stay within 0-100 across inputs."""
        for strength in (0, 25, 50, 75, 100):
            for regime in ("uptrend", "downtrend", "ranging"):
                result = calculate_conviction_score(
                    strategy,
                    [Signal("RSI", strength=strength), Signal("MACD", strength=strength)],
                    {"squeeze": _squeeze(10), "adx": [50.0] * 20},
                    CANDLES,
                    RegimeState(regime, 1.0),
                )
                assert isinstance(result, ConvictionScore)
                assert 0 <= result.score <= 100
                assert result.multiplier in (1.0, 1.25, 1.5)
