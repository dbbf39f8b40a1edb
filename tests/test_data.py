"""Tests for candle series adapters."""

import pandas as pd
import pytest

from confluence.core.models import Candle
from confluence.data.candles import candles_from_dataframe, candles_to_dataframe, validate_candles


class TestFrameValidation:
    """Tests for OHLCV frame checks done during conversion."""

    def test_missing_columns(self, ohlcv_frame):
        """Missing columns should be reported."""
        with pytest.raises(ValueError, match="volume"):
            candles_from_dataframe(ohlcv_frame.drop(columns=["volume"]))

    def test_requires_datetime_index(self, ohlcv_frame):
        """A non-datetime index should be rejected."""
        with pytest.raises(ValueError, match="DatetimeIndex"):
            candles_from_dataframe(ohlcv_frame.reset_index(drop=True))

    def test_empty_frame(self, ohlcv_frame):
        """An empty frame should be rejected."""
        with pytest.raises(ValueError, match="empty"):
            candles_from_dataframe(ohlcv_frame.iloc[0:0])

    def test_repeated_timestamps(self, ohlcv_frame):
        """Duplicate index entries should be rejected."""
        doubled = pd.concat([ohlcv_frame.iloc[:3], ohlcv_frame.iloc[2:4]])
        with pytest.raises(ValueError, match="time-ascending"):
            candles_from_dataframe(doubled)


class TestConversion:
    """Tests for DataFrame <-> Candle conversion."""

    def test_candles_from_dataframe(self, ohlcv_frame):
        """Each row should become a Candle with matching values."""
        candles = candles_from_dataframe(ohlcv_frame)

        assert len(candles) == len(ohlcv_frame)
        assert isinstance(candles[0], Candle)
        assert candles[0].timestamp == ohlcv_frame.index[0]
        assert candles[-1].close == pytest.approx(ohlcv_frame["close"].iloc[-1])

    def test_unsorted_frame_is_sorted(self, ohlcv_frame):
        """Candles should come out time-ascending."""
        shuffled = ohlcv_frame.iloc[::-1]
        candles = candles_from_dataframe(shuffled)

        assert validate_candles(candles)
        assert candles[0].timestamp == ohlcv_frame.index[0]

    def test_round_trip_frame(self, ohlcv_frame):
        """Converting back should reproduce the OHLCV columns."""
        frame = candles_to_dataframe(candles_from_dataframe(ohlcv_frame))

        pd.testing.assert_frame_equal(
            frame, ohlcv_frame[["open", "high", "low", "close", "volume"]], check_freq=False
        )

    def test_empty_candles_to_dataframe(self):
        """No candles should give an empty frame."""
        assert candles_to_dataframe([]).empty


class TestValidateCandles:
    """Tests for candle series validation."""

    def test_rejects_empty(self):
        """Empty series should raise."""
        with pytest.raises(ValueError):
            validate_candles([])

    def test_rejects_out_of_order(self, candles):
        """Descending timestamps should raise."""
        with pytest.raises(ValueError, match="time-ascending"):
            validate_candles([candles[1], candles[0]])
