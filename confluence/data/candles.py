"""Candle series adapters between pandas OHLCV frames and Candle records."""

import pandas as pd

from confluence.core.models import Candle

REQUIRED_COLUMNS = ["open", "high", "low", "close", "volume"]


def candles_from_dataframe(df: pd.DataFrame) -> list[Candle]:
    """
    Convert an OHLCV DataFrame into a time-ascending list of Candle.

    An unsorted frame is sorted by its index first. The resulting series goes
    through validate_candles, so empty frames and repeated timestamps are
    rejected.

    Args:
        df: DataFrame with [open, high, low, close, volume] and a DatetimeIndex

    Returns:
        List of Candle, sorted by timestamp

    Raises:
        ValueError: If columns are missing, the index is not a DatetimeIndex,
            or the resulting series is empty or has repeated timestamps

    Example:
        >>> candles = candles_from_dataframe(btc_4h)
        >>> candles[0].close
        42000.0
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"OHLCV frame is missing columns: {missing}")
    if not isinstance(df.index, pd.DatetimeIndex):
        raise ValueError(f"OHLCV frame needs a DatetimeIndex, got {type(df.index).__name__}")

    ordered = df if df.index.is_monotonic_increasing else df.sort_index()
    candles = [
        Candle(
            timestamp=ts,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for ts, row in zip(ordered.index, ordered[REQUIRED_COLUMNS].itertuples(index=False))
    ]
    validate_candles(candles)
    return candles


def candles_to_dataframe(candles: list[Candle]) -> pd.DataFrame:
    """Inverse of candles_from_dataframe."""
    if not candles:
        return pd.DataFrame(columns=REQUIRED_COLUMNS, index=pd.DatetimeIndex([]))

    return pd.DataFrame(
        {col: [getattr(c, col) for c in candles] for col in REQUIRED_COLUMNS},
        index=pd.DatetimeIndex([c.timestamp for c in candles]),
    )


def validate_candles(candles: list[Candle]) -> bool:
    """
    Check that a candle series is non-empty and strictly time-ascending.

    Raises:
        ValueError: If the series is empty or out of order
    """
    if not candles:
        raise ValueError("Candle series is empty")

    for prev, curr in zip(candles, candles[1:]):
        if curr.timestamp <= prev.timestamp:
            raise ValueError(
                f"Candles must be time-ascending: {curr.timestamp} follows {prev.timestamp}"
            )
    return True
